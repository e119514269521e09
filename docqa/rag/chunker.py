"""Text chunking with overlap for the RAG pipeline.

Fixed-size character windows; no tokenizer, no word or sentence snapping.
"""
from typing import List
from dataclasses import dataclass
import structlog

from docqa import config
from docqa.errors import ConfigurationError

logger = structlog.get_logger()


@dataclass(frozen=True)
class TextChunk:
    """One window of the source text and where it came from."""

    content: str
    char_start: int
    char_end: int
    chunk_index: int


class TextChunker:
    """Fixed-size sliding window over characters."""

    def __init__(
        self,
        chunk_size: int = None,
        chunk_overlap: int = None,
    ):
        """Validate the window geometry.

        Args:
            chunk_size: Window length in characters (config.CHUNK_SIZE if omitted)
            chunk_overlap: Characters shared by consecutive windows (config.CHUNK_OVERLAP if omitted)

        Raises:
            ConfigurationError: If the window would never advance
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = (
            config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap
        )

        if self.chunk_size <= 0:
            raise ConfigurationError(
                f"Chunk size must be positive, got {self.chunk_size}"
            )
        if self.chunk_overlap < 0:
            raise ConfigurationError(
                f"Overlap must not be negative, got {self.chunk_overlap}"
            )
        if self.chunk_overlap >= self.chunk_size:
            raise ConfigurationError(
                f"chunk_overlap={self.chunk_overlap} leaves no room to advance "
                f"with chunk_size={self.chunk_size}"
            )

        logger.info(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    @property
    def step(self) -> int:
        return self.chunk_size - self.chunk_overlap

    def chunk_text(self, text: str) -> List[TextChunk]:
        """Cut text into overlapping windows.

        Windows start at 0, chunk_size - overlap, 2 * (chunk_size - overlap), ...
        and stop at the first window that reaches the end of the text.

        Args:
            text: Text to chunk

        Returns:
            List of TextChunk objects in document order
        """
        if not text:
            return []

        text_length = len(text)
        chunks = []
        start = 0

        while start < text_length:
            end = min(start + self.chunk_size, text_length)
            chunks.append(
                TextChunk(
                    content=text[start:end],
                    char_start=start,
                    char_end=end,
                    chunk_index=len(chunks),
                )
            )
            if end == text_length:
                break
            start += self.step

        logger.info(
            "text_chunked",
            text_length=text_length,
            chunk_count=len(chunks),
        )

        return chunks

    def get_chunk_stats(self, chunks: List[TextChunk]) -> dict:
        """Summarize chunk lengths for logging."""
        lengths = [len(c.content) for c in chunks] or [0]
        return {
            "chunk_count": len(chunks),
            "covered_chars": chunks[-1].char_end if chunks else 0,
            "min_chunk_size": min(lengths),
            "max_chunk_size": max(lengths),
            "overlap": self.chunk_overlap,
        }


def chunk_text(
    text: str, chunk_size: int = None, chunk_overlap: int = None
) -> List[str]:
    """Return just the window strings for a text."""
    chunker = TextChunker(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    return [chunk.content for chunk in chunker.chunk_text(text)]
