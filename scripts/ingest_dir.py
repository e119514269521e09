#!/usr/bin/env python
"""Ingest every PDF and text file of a directory, one namespace per file.

Usage:
    python scripts/ingest_dir.py data/              # Ingest PDFs and .txt/.md files
    python scripts/ingest_dir.py data/ --pdf-only   # Ingest PDFs only
    python scripts/ingest_dir.py data/ --verbose    # Show detailed progress
"""
import argparse
import asyncio
import sys
from pathlib import Path
from datetime import datetime

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from docqa import config
from docqa.errors import DocQAError
from docqa.rag.extractor import resolve_media_type
from docqa.services import build_services
import structlog

logger = structlog.get_logger()

TEXT_SUFFIXES = {".txt", ".md"}


class ProgressReporter:
    """Prints one line per file and a summary at the end."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.started = None

    def start(self, total: int):
        self.started = datetime.now()
        print(f"\nIngesting {total} document(s), one namespace each\n")

    def update(self, current: int, total: int, file_path: Path):
        width = len(str(total))
        end = "\n" if self.verbose else ""
        print(f"\r  {current:>{width}}/{total}  {file_path.name[:50]:<50}", end=end, flush=True)

    def finish(self, stats: dict):
        elapsed = (datetime.now() - self.started).total_seconds()
        print(
            f"\n\nDone in {elapsed:.1f}s: {stats['files_processed']} ingested, "
            f"{stats['files_failed']} failed, {stats['chunks_created']} chunks"
        )
        for file_name, namespace in stats["namespaces"].items():
            print(f"  {namespace}  {file_name}")
        if stats["files_failed"]:
            print("\nSome files failed; see the log output for the reason.")
        print()


def discover_files(directory: Path, pdf_only: bool = False) -> list:
    """Find ingestible files directly inside a directory.

    Raises:
        FileNotFoundError: If the directory doesn't exist
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")

    suffixes = {".pdf"} if pdf_only else {".pdf"} | TEXT_SUFFIXES
    return sorted(
        path for path in directory.iterdir()
        if path.is_file() and path.suffix.lower() in suffixes
    )


async def ingest_directory(pipeline, files: list, progress: ProgressReporter) -> dict:
    """Ingest files one by one; a failing file does not stop the run."""
    stats = {
        "files_processed": 0,
        "files_failed": 0,
        "chunks_created": 0,
        "namespaces": {},
    }

    for idx, path in enumerate(files, 1):
        progress.update(idx, len(files), path)
        try:
            result = await pipeline.ingest_document(
                path.name, path.read_bytes(), resolve_media_type(path.name)
            )
        except DocQAError as e:
            logger.error("file_ingestion_failed", path=str(path), error=str(e))
            stats["files_failed"] += 1
            continue

        stats["files_processed"] += 1
        stats["chunks_created"] += result.chunk_count
        stats["namespaces"][path.name] = result.namespace

    return stats


async def main():
    """Main entry point for the ingest script."""
    parser = argparse.ArgumentParser(
        description="Ingest a directory of documents into the vector store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/ingest_dir.py data/              # PDFs and text files
  python scripts/ingest_dir.py data/ --pdf-only   # PDFs only
        """,
    )
    parser.add_argument("directory", type=Path, help="Directory to ingest")
    parser.add_argument(
        "--pdf-only",
        action="store_true",
        help="Only ingest .pdf files",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show verbose progress output",
    )
    args = parser.parse_args()

    progress = ProgressReporter(verbose=args.verbose)

    try:
        print("\nConfiguration:")
        print(f"   Directory:        {args.directory}")
        print(f"   Vector backend:   {config.VECTOR_BACKEND}")
        print(f"   Embedding model:  {config.EMBEDDING_MODEL}")
        print(f"   Chunk size:       {config.CHUNK_SIZE} chars")
        print(f"   Chunk overlap:    {config.CHUNK_OVERLAP} chars")
        print(f"   Concurrency:      {config.EMBED_CONCURRENCY}")

        files = discover_files(args.directory, pdf_only=args.pdf_only)
        if not files:
            print(f"\nNo documents found in {args.directory}\n")
            sys.exit(1)

        services = build_services()
        await services.initialize()

        progress.start(len(files))
        stats = await ingest_directory(services.pipeline, files, progress)
        progress.finish(stats)

        if stats["files_failed"] > 0:
            sys.exit(1)

    except KeyboardInterrupt:
        print("\n\nIngestion cancelled by user.\n")
        sys.exit(1)

    except FileNotFoundError as e:
        print(f"\nError: {e}\n")
        sys.exit(1)

    except Exception as e:
        print(f"\nError: {e}\n")
        logger.error("ingest_script_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
