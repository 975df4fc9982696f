"""
Custom exception hierarchy for the DeepSeek AI Code Review tool
"""

from typing import Any, Dict, Optional


class CodeReviewException(Exception):
    """Base exception for all code review errors"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error
        # Filled in by the retry controller once a chunk gives up
        self.retry_attempts: Optional[int] = None
        self.retry_success: Optional[bool] = None

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationException(CodeReviewException):
    """Configuration validation errors"""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        details = kwargs.get("details", {})
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, details, kwargs.get("original_error"))
        self.config_key = config_key


class DeepSeekAPIException(CodeReviewException):
    """Transport or non-success HTTP errors from the DeepSeek API"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.get("details", {})
        if status_code:
            details["status_code"] = status_code

        super().__init__(message, details, kwargs.get("original_error"))
        self.status_code = status_code
        self.response_body = response_body


class ReviewTimeoutException(CodeReviewException):
    """No response from the DeepSeek API within the allotted time"""

    def __init__(self, message: str, chunk_number: Optional[int] = None, **kwargs):
        details = kwargs.get("details", {})
        if chunk_number:
            details["chunk_number"] = chunk_number

        super().__init__(message, details, kwargs.get("original_error"))
        self.chunk_number = chunk_number


class MalformedResponseException(CodeReviewException):
    """Successful HTTP response without the expected completion payload"""


class AllChunksFailedException(CodeReviewException):
    """Raised when not a single chunk could be reviewed"""

    def __init__(
        self,
        message: str,
        failed_count: int = 0,
        first_error: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.get("details", {})
        details["failed_count"] = failed_count

        super().__init__(message, details, kwargs.get("original_error"))
        self.failed_count = failed_count
        self.first_error = first_error


class FileReadException(CodeReviewException):
    """Source file could not be read"""

    def __init__(self, message: str, file_path: Optional[str] = None, **kwargs):
        details = kwargs.get("details", {})
        if file_path:
            details["file_path"] = file_path

        super().__init__(message, details, kwargs.get("original_error"))
        self.file_path = file_path
