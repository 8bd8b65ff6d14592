"""Exceptions for the Infocraftic infographic generator."""

from typing import Optional


class InfocrafticError(Exception):
    """Base class for every error raised by Infocraftic."""
    pass


class ExtractionUnavailable(InfocrafticError):
    """Raised when content extraction cannot start (missing credential or client)."""
    pass


class ExtractionRequestFailed(InfocrafticError):
    """Raised when the completion endpoint returns a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        """
        Initialize ExtractionRequestFailed.

        Args:
            message: Human-readable error message
            status_code: HTTP status code returned by the endpoint, if known
        """
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        """Return formatted error message."""
        msg = super().__str__()
        if self.status_code is not None:
            msg = f"{msg} (HTTP {self.status_code})"
        return msg


class ExtractionParseFailed(InfocrafticError):
    """Raised when the completion text is not valid infographic JSON."""

    def __init__(self, message: str, raw_content: Optional[str] = None):
        """
        Initialize ExtractionParseFailed.

        Args:
            message: Human-readable error message
            raw_content: Completion text that failed to parse
        """
        super().__init__(message)
        self.raw_content = raw_content


class CanvasUnavailable(InfocrafticError):
    """Raised by a drawing surface that cannot report its dimensions."""
    pass


class DrawFailed(InfocrafticError):
    """Raised when a drawing primitive rejects a command."""

    def __init__(
        self,
        message: str,
        element_type: Optional[str] = None,
        command_index: Optional[int] = None,
        command_kind: Optional[str] = None
    ):
        """
        Initialize DrawFailed.

        Args:
            message: Human-readable error message
            element_type: Element being added when the primitive failed
            command_index: Position of the failing command in the element's sequence
            command_kind: Primitive that failed ("rectangle" or "text")
        """
        super().__init__(message)
        self.element_type = element_type
        self.command_index = command_index
        self.command_kind = command_kind

    def __str__(self) -> str:
        """Return formatted error message."""
        msg = super().__str__()

        if self.element_type:
            msg = f"{self.element_type}: {msg}"

        if self.command_index is not None:
            msg = f"{msg} (command {self.command_index}: {self.command_kind or 'unknown'})"

        return msg
