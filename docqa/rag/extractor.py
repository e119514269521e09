"""Plain-text extraction from uploaded documents.

Supports two declared media types:
- "pdf": text of every page, via pypdf
- "text": the raw bytes decoded as UTF-8 (strict)

Blank output is returned as-is; callers decide whether that is an error.
"""
import asyncio
import io

import structlog
from pypdf import PdfReader

from docqa.errors import CorruptDocumentError, DecodeError, UnsupportedMediaTypeError

logger = structlog.get_logger()

PDF = "pdf"
TEXT = "text"
MEDIA_TYPES = (PDF, TEXT)


def resolve_media_type(filename: str, mimetype: str = None) -> str:
    """Map an upload's filename and MIME type to a declared media type.

    Anything that is not a PDF is treated as text.
    """
    if mimetype and mimetype.split(";")[0].strip().lower() == "application/pdf":
        return PDF
    if filename and filename.lower().endswith(".pdf"):
        return PDF
    return TEXT


def _extract_pdf(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as e:
        logger.error("pdf_parse_failed", error=str(e), error_type=type(e).__name__)
        raise CorruptDocumentError() from e

    logger.debug("pdf_text_extracted", page_count=len(pages))
    return "\n".join(pages)


def _extract_plain_text(data: bytes) -> str:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.error("text_decode_failed", error=str(e), position=e.start)
        raise DecodeError() from e

    # Drop a leading byte order mark
    return text.lstrip("\ufeff")


def extract_text(data: bytes, media_type: str) -> str:
    """Extract plain text from a document buffer.

    Args:
        data: Raw file content
        media_type: "pdf" or "text"

    Returns:
        Extracted text (possibly empty)

    Raises:
        CorruptDocumentError: If a PDF buffer cannot be parsed
        DecodeError: If a text buffer is not valid UTF-8
        UnsupportedMediaTypeError: If media_type is not recognised
    """
    if media_type == PDF:
        text = _extract_pdf(data)
    elif media_type == TEXT:
        text = _extract_plain_text(data)
    else:
        raise UnsupportedMediaTypeError(f"Unsupported document type: {media_type}")

    logger.info(
        "text_extracted",
        media_type=media_type,
        byte_count=len(data),
        text_length=len(text),
    )
    return text


async def extract_text_async(data: bytes, media_type: str) -> str:
    """Extract text without blocking the event loop on PDF parsing."""
    if media_type == PDF:
        return await asyncio.to_thread(extract_text, data, media_type)
    return extract_text(data, media_type)
