"""Application configuration with sensible defaults.

Values are read from the environment once, at import time.
"""
import os
from pathlib import Path

from docqa.errors import ConfigurationError

# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))

# Environment
APP_ENV = os.getenv("APP_ENV", "development")
EXPOSE_ERROR_DETAILS = APP_ENV != "production"

# Gemini (embeddings + generation)
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")
GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-004")
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "768"))
CHAT_MODEL = os.getenv("CHAT_MODEL", "gemini-1.5-flash")
PROVIDER_TIMEOUT = float(os.getenv("PROVIDER_TIMEOUT", "60.0"))

# Vector store
VECTOR_BACKEND = os.getenv("VECTOR_BACKEND", "pinecone")  # "pinecone" or "faiss"
PINECONE_API_KEY = os.getenv("PINECONE_API_KEY", "")
PINECONE_INDEX = os.getenv("PINECONE_INDEX", "query-assistant")
PINECONE_CLOUD = os.getenv("PINECONE_CLOUD", "aws")
PINECONE_REGION = os.getenv("PINECONE_REGION", "us-east-1")
PINECONE_UPSERT_BATCH_SIZE = int(os.getenv("PINECONE_UPSERT_BATCH_SIZE", "100"))
FAISS_INDEX_DIR = Path(os.getenv("FAISS_INDEX_DIR", str(DATA_DIR / "vectors")))

# Namespace registry
REGISTRY_DB_PATH = Path(
    os.getenv("REGISTRY_DB_PATH", str(DATA_DIR / "documents.sqlite"))
)

# RAG parameters (character-based, no tokenizer)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "500"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "100"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "5"))        # per namespace
SCORE_THRESHOLD = float(os.getenv("SCORE_THRESHOLD", "0.5"))    # cosine
FALLBACK_TOP_N = int(os.getenv("FALLBACK_TOP_N", "5"))          # 0 disables
MAX_CONTEXT_MATCHES = int(os.getenv("MAX_CONTEXT_MATCHES", "5"))
EMBED_CONCURRENCY = int(os.getenv("EMBED_CONCURRENCY", "8"))

# HTTP
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "25"))
FRONTEND_URL = os.getenv("FRONTEND_URL", "")
KNOWN_ORIGINS = [
    "https://query-assistant.netlify.app",
    "http://localhost:5173",
    "http://localhost:3000",
]


def _parse_origins(*values: str) -> list:
    origins = []
    for value in values:
        for origin in value.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)
    return origins


ALLOWED_ORIGINS = _parse_origins(
    FRONTEND_URL, os.getenv("CORS_ALLOWED_ORIGINS", ""), ",".join(KNOWN_ORIGINS)
)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def validate() -> None:
    """Check that the configuration can serve traffic.

    Raises:
        ConfigurationError: If a required key is missing or a value is invalid
    """
    problems = []

    if not GOOGLE_API_KEY:
        problems.append("GOOGLE_API_KEY is not set")

    if VECTOR_BACKEND not in ("pinecone", "faiss"):
        problems.append(f"Unknown VECTOR_BACKEND: {VECTOR_BACKEND!r}")
    elif VECTOR_BACKEND == "pinecone" and not PINECONE_API_KEY:
        problems.append("PINECONE_API_KEY is not set")

    if CHUNK_OVERLAP >= CHUNK_SIZE:
        problems.append(
            f"CHUNK_OVERLAP ({CHUNK_OVERLAP}) must be less than CHUNK_SIZE ({CHUNK_SIZE})"
        )

    if EMBED_CONCURRENCY < 1:
        problems.append("EMBED_CONCURRENCY must be at least 1")

    if problems:
        raise ConfigurationError("; ".join(problems))
