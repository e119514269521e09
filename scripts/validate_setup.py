#!/usr/bin/env python
"""Check that the service can start: dependencies, configuration, Gemini and the vector store.

Usage:
    python scripts/validate_setup.py
"""
import asyncio
import importlib
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"

REQUIRED_MODULES = [
    ("quart", "web framework"),
    ("quart_cors", "CORS allow-list"),
    ("hypercorn", "ASGI server"),
    ("httpx", "Gemini HTTP client"),
    ("structlog", "logging"),
    ("pypdf", "PDF extraction"),
    ("faiss", "local vector backend"),
    ("numpy", "vector math"),
    ("pinecone", "managed vector backend"),
]


class Report:
    """Collects check outcomes and prints them as they happen."""

    def __init__(self):
        self.failures = []
        self.notes = []

    def section(self, title: str):
        print(f"\n{BLUE}-- {title} {'-' * (56 - len(title))}{RESET}")

    def ok(self, msg: str):
        print(f"  {GREEN}ok{RESET}    {msg}")

    def info(self, msg: str):
        print(f"  {BLUE}..{RESET}    {msg}")

    def fail(self, msg: str):
        print(f"  {RED}FAIL{RESET}  {msg}")
        self.failures.append(msg)

    def warn(self, msg: str):
        print(f"  {YELLOW}warn{RESET}  {msg}")
        self.notes.append(msg)


def check_interpreter(report: Report):
    report.section("Interpreter")
    version = ".".join(str(part) for part in sys.version_info[:3])
    if sys.version_info < (3, 10):
        report.fail(f"Python {version} is older than 3.10")
    else:
        report.ok(f"Python {version}")

    if sys.prefix == getattr(sys, "base_prefix", sys.prefix):
        report.warn("not inside a virtual environment")


def check_modules(report: Report):
    report.section("Dependencies")
    for module_name, purpose in REQUIRED_MODULES:
        try:
            importlib.import_module(module_name)
        except ImportError as e:
            report.fail(f"{module_name} ({purpose}): {e}")
        else:
            report.ok(f"{module_name:12} {purpose}")


def check_config(report: Report):
    """Returns the config module, or None when it cannot serve traffic."""
    report.section("Configuration")
    from docqa import config
    from docqa.errors import ConfigurationError

    report.info(f"models: {config.CHAT_MODEL} / {config.EMBEDDING_MODEL} ({config.EMBEDDING_DIMENSION} dims)")
    report.info(f"backend: {config.VECTOR_BACKEND}")
    report.info(f"chunks: {config.CHUNK_SIZE} chars, {config.CHUNK_OVERLAP} overlap")
    report.info(f"threshold: {config.SCORE_THRESHOLD}, top_k {config.RETRIEVAL_TOP_K} per namespace")
    report.info(f"origins: {', '.join(config.ALLOWED_ORIGINS)}")

    try:
        config.validate()
    except ConfigurationError as e:
        report.fail(e.message)
        return None

    report.ok("required settings present")
    return config


async def check_gemini(report: Report, config):
    report.section("Gemini")
    from docqa.errors import DocQAError
    from docqa.gemini_client import GeminiClient

    client = GeminiClient()
    try:
        models = await client.list_models()
        missing = [m for m in (config.CHAT_MODEL, config.EMBEDDING_MODEL) if m not in models]
        if missing:
            report.fail(f"models not available to this key: {', '.join(missing)}")
        else:
            report.ok(f"{len(models)} models listed at {config.GEMINI_BASE_URL}")

        dimension = len(await client.embed("setup check"))
    except DocQAError as e:
        report.fail(f"Gemini: {e.message}")
        return

    if dimension != config.EMBEDDING_DIMENSION:
        report.fail(f"embedding has {dimension} dims, EMBEDDING_DIMENSION is {config.EMBEDDING_DIMENSION}")
    else:
        report.ok(f"embedding call returned {dimension} dims")


async def check_vector_store(report: Report):
    report.section("Vector store")
    from docqa.errors import DocQAError
    from docqa.rag.store import create_vector_store

    try:
        store = create_vector_store()
        await store.initialize()
        namespaces = await store.list_namespaces()
    except DocQAError as e:
        report.fail(f"vector store: {e.message}")
        return

    report.ok(f"{type(store).__name__} holds {len(namespaces)} namespaces")


async def main() -> Report:
    report = Report()
    check_interpreter(report)
    check_modules(report)

    if not report.failures:
        config = check_config(report)
        if config is not None:
            await check_gemini(report, config)
            await check_vector_store(report)

    report.section("Result")
    if report.failures:
        print(f"  {RED}{len(report.failures)} check(s) failed{RESET}")
    else:
        print(f"  {GREEN}ready{RESET}: hypercorn docqa.main:app --bind 0.0.0.0:3000")
    if report.notes:
        print(f"  {YELLOW}{len(report.notes)} warning(s){RESET}")
    print()
    return report


if __name__ == "__main__":
    sys.exit(1 if asyncio.run(main()).failures else 0)
