"""Namespace registry for uploaded documents.

SQLite database mapping each upload's namespace to its file name,
media type, chunk count and creation time. Vectors themselves live in
the vector store; this table only answers "what has been uploaded".
"""
import sqlite3
from pathlib import Path
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
import structlog

from docqa import config

logger = structlog.get_logger()


class DocumentRegistry:
    """Small SQLite store of uploaded documents keyed by namespace."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else config.REGISTRY_DB_PATH

    def get_connection(self) -> sqlite3.Connection:
        """Get a connection to the SQLite database.

        Returns:
            sqlite3.Connection with row_factory set to sqlite3.Row
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_database(self) -> None:
        """Create the documents table if it doesn't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    namespace TEXT PRIMARY KEY,
                    file_name TEXT NOT NULL,
                    media_type TEXT NOT NULL,
                    chunk_count INTEGER NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_documents_file_name
                ON documents(file_name)
            """)

            conn.commit()
            logger.info("database_initialized", db_path=str(self.db_path))

        except Exception as e:
            conn.rollback()
            logger.error("database_init_failed", error=str(e))
            raise
        finally:
            conn.close()

    def register_document(
        self,
        namespace: str,
        file_name: str,
        media_type: str,
        chunk_count: int,
    ) -> Dict[str, Any]:
        """Record a successfully indexed upload.

        Returns:
            The stored row as a dictionary
        """
        created_at = datetime.now(timezone.utc).isoformat()
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT OR REPLACE INTO documents (
                    namespace, file_name, media_type, chunk_count, created_at
                ) VALUES (?, ?, ?, ?, ?)
            """, (namespace, file_name, media_type, chunk_count, created_at))

            conn.commit()
            logger.info(
                "document_registered",
                namespace=namespace,
                file_name=file_name,
                chunk_count=chunk_count,
            )

        except Exception as e:
            conn.rollback()
            logger.error("document_register_failed", error=str(e), namespace=namespace)
            raise
        finally:
            conn.close()

        return {
            "namespace": namespace,
            "file_name": file_name,
            "media_type": media_type,
            "chunk_count": chunk_count,
            "created_at": created_at,
        }

    def list_documents(self) -> List[Dict[str, Any]]:
        """List every registered document, newest first."""
        conn = self.get_connection()

        try:
            rows = conn.execute("""
                SELECT namespace, file_name, media_type, chunk_count, created_at
                FROM documents
                ORDER BY created_at DESC, rowid DESC
            """).fetchall()
            return [dict(row) for row in rows]

        except Exception as e:
            logger.error("documents_list_failed", error=str(e))
            raise
        finally:
            conn.close()

    def get_document(self, namespace: str) -> Optional[Dict[str, Any]]:
        conn = self.get_connection()

        try:
            row = conn.execute(
                "SELECT * FROM documents WHERE namespace = ?", (namespace,)
            ).fetchone()
            return dict(row) if row else None

        except Exception as e:
            logger.error("document_get_failed", error=str(e), namespace=namespace)
            raise
        finally:
            conn.close()
