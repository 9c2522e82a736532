#!/usr/bin/env python3
"""
Centralized exceptions for mp4concat
Provides custom exceptions with error codes and user-friendly messages
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging


logger = logging.getLogger(__name__)


class Mp4ConcatError(Exception):
    """
    Base exception for all mp4concat errors

    Attributes:
        code: Unique error code for tracking
        message: User-friendly error message
        details: Additional error context
        timestamp: When the error occurred
    """

    def __init__(
        self,
        message: str,
        code: str = "MP4CONCAT_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)

        logger.debug(
            f"{self.code}: {self.message}",
            extra={
                "error_code": self.code,
                "error_details": self.details,
                "error_type": self.__class__.__name__
            }
        )

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for JSON output"""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp.isoformat(),
                "type": self.__class__.__name__
            }
        }


# Candidate selection errors
class SourceDirectoryError(Mp4ConcatError):
    """Raised when the source directory is missing or unreadable"""

    def __init__(self, path: str, reason: str = "not a directory"):
        super().__init__(
            f"Source path '{path}' is {reason}",
            "SOURCE_DIRECTORY_ERROR",
            details={"path": str(path), "reason": reason}
        )


class InvalidPatternError(Mp4ConcatError):
    """Raised when the filename filter is not a valid regular expression"""

    def __init__(self, pattern: str, reason: str):
        super().__init__(
            f"Invalid filename filter '{pattern}': {reason}",
            "INVALID_PATTERN",
            details={"pattern": pattern, "reason": reason}
        )


class NoCandidatesError(Mp4ConcatError):
    """Raised when no file matches the filter"""

    def __init__(self, directory: str = "", pattern: str = ""):
        super().__init__(
            f"No files matching '{pattern}' found in '{directory}'",
            "NO_CANDIDATES",
            details={"directory": str(directory), "pattern": pattern}
        )


# Output errors
class OutputPathError(Mp4ConcatError):
    """Raised when the output location cannot be prepared"""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Cannot use output path '{path}': {reason}",
            "OUTPUT_PATH_ERROR",
            details={"path": str(path), "reason": reason}
        )


class ConcatError(Mp4ConcatError):
    """Raised when the external concatenation fails"""

    def __init__(self, output_path: str, reason: str, stderr: str = ""):
        super().__init__(
            f"Concatenation into '{output_path}' failed: {reason}",
            "CONCAT_FAILED",
            details={
                "output_path": str(output_path),
                "reason": reason,
                "stderr": stderr[-2000:],
            }
        )


class OutputVerificationError(Mp4ConcatError):
    """Raised when the output is missing or empty after concatenation"""

    def __init__(self, output_path: str):
        super().__init__(
            f"Output '{output_path}' is missing or empty after concatenation",
            "OUTPUT_VERIFICATION_FAILED",
            details={"output_path": str(output_path)}
        )
