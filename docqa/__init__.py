"""Document question-answering service."""

__version__ = "1.0.0"
