"""Exceptions raised while rendering page content."""

from src.git_backend.errors import WikiError


class ConversionError(WikiError):
    """Raised when markdown cannot be rendered to HTML."""
    pass
