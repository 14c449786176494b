"""Exceptions raised by the page store before any write is attempted."""

from src.git_backend.errors import WikiError


class InvalidIdentifierError(WikiError, ValueError):
    """Raised when a page name, culture, media path or id is malformed.

    Attributes:
        field: Name of the rejected argument (e.g. "page_name")
        value: The rejected value
        reason: Why the value was rejected
    """

    def __init__(self, field: str, value: object, reason: str):
        super().__init__(f"Invalid {field} {value!r}: {reason}")
        self.field = field
        self.value = value
        self.reason = reason


class PathConflictError(WikiError):
    """Raised when a page would be written where a directory already exists."""

    def __init__(self, path: str):
        super().__init__(
            f"Cannot write '{path}': a directory with the same name already exists"
        )
        self.path = path


class FrontMatterError(WikiError):
    """Raised when the YAML front matter of a page cannot be parsed."""

    def __init__(self, page_name: str, message: str):
        super().__init__(f"Front matter error in {page_name}: {message}")
        self.page_name = page_name
        self.message = message
