"""
Custom exceptions for AVC Importer.

This module defines all custom exceptions used throughout the application
for better error handling and debugging.
"""

from typing import Any, Optional


class AVCImporterException(Exception):
    """Base exception for all AVC Importer errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# EDI Parsing Exceptions
# =============================================================================


class EDIParseError(AVCImporterException):
    """Base exception for malformed inbound X12 documents."""

    segment = ""

    def __init__(self, message: str, document: Optional[str] = None) -> None:
        """Initialize with the offending document name, if known."""
        details = {"segment": self.segment}
        if document:
            details["document"] = document
        super().__init__(message, details)
        self.document = document


class InvalidEnvelopeError(EDIParseError):
    """ISA interchange header missing or malformed."""

    segment = "ISA"


class InvalidGroupError(EDIParseError):
    """GS functional group header missing or malformed."""

    segment = "GS"


class InvalidTransactionSetError(EDIParseError):
    """ST transaction set header missing or malformed."""

    segment = "ST"


# =============================================================================
# Checkpoint Exceptions
# =============================================================================


class CheckpointError(AVCImporterException):
    """Base exception for checkpoint persistence."""

    pass


class CheckpointIOError(CheckpointError):
    """Checkpoint file could not be read or written."""

    def __init__(self, path: str, error: str) -> None:
        """Initialize with path information."""
        message = f"Checkpoint I/O failed for '{path}': {error}"
        super().__init__(message, {"path": path})


class CorruptCheckpointError(CheckpointError):
    """Checkpoint file exists but cannot be parsed."""

    def __init__(self, path: str, error: str) -> None:
        """Initialize with path information."""
        message = f"Checkpoint '{path}' is corrupt: {error}"
        super().__init__(message, {"path": path})


# =============================================================================
# Transport Exceptions
# =============================================================================


class TransportError(AVCImporterException):
    """Base exception for remote fetch/put failures."""

    pass


class SFTPTransportError(TransportError):
    """SFTP session or file operation failed."""

    def __init__(self, operation: str, path: str, error: str) -> None:
        """Initialize with remote path information."""
        message = f"SFTP {operation} failed for '{path}': {error}"
        super().__init__(message, {"operation": operation, "path": path})


class AuthenticationError(TransportError):
    """OAuth token exchange failed."""

    pass


class APIRequestError(TransportError):
    """Order feed request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None) -> None:
        """Initialize with HTTP response information."""
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if body:
            details["body"] = body[:500]
        super().__init__(message, details)
        self.status_code = status_code


# =============================================================================
# Storage Exceptions
# =============================================================================


class StorageError(AVCImporterException):
    """Local persistence of fetched data failed."""

    pass


class UnsupportedFormatError(StorageError):
    """Unsupported output format."""

    def __init__(self, format: str, supported: list[str]) -> None:
        """Initialize with format information."""
        message = f"Format '{format}' not supported. Supported formats: {', '.join(supported)}"
        super().__init__(message, {"format": format, "supported": supported})


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(AVCImporterException):
    """Configuration error."""

    pass


class MissingConfigurationError(ConfigurationError):
    """Required configuration missing."""

    def __init__(self, config_name: str) -> None:
        """Initialize with config name."""
        message = f"Required configuration '{config_name}' is missing"
        super().__init__(message, {"config_name": config_name})


class InvalidConfigurationError(ConfigurationError):
    """Configuration present but invalid."""

    pass
