"""Error types raised by the document QA service.

Each error carries the HTTP status it maps to and a user-facing message.
Caller-input problems map to 400, everything else to 500.
"""
from typing import Optional


class DocQAError(Exception):
    """Base class for all service errors."""

    status_code = 500
    message = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class NoFileError(DocQAError):
    status_code = 400
    message = "No file uploaded."


class CorruptDocumentError(DocQAError):
    status_code = 400
    message = (
        "The uploaded PDF appears to be corrupted or invalid. "
        "Please try a different file."
    )


class DecodeError(DocQAError):
    status_code = 400
    message = "The uploaded file is not valid UTF-8 text."


class UnsupportedMediaTypeError(DocQAError):
    status_code = 400
    message = "Unsupported document type."


class EmptyDocumentError(DocQAError):
    status_code = 400
    message = "No text could be extracted from the uploaded document."


class MissingQuestionError(DocQAError):
    status_code = 400
    message = "A question is required."


class ProviderUnavailableError(DocQAError):
    """Embedding or generation provider failed or could not be reached."""

    message = "The language model provider is unavailable."


class RateLimitError(ProviderUnavailableError):
    message = "The language model provider is rate limiting requests."


class VectorStoreError(DocQAError):
    message = "The vector store request failed."


class ConfigurationError(DocQAError):
    message = "The service is misconfigured."


class UnknownError(DocQAError):
    message = "An error occurred processing your request. Please try again."
