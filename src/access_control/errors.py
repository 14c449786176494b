"""Exceptions raised by the access control engine."""

from src.git_backend.errors import WikiError


class RuleFormatError(WikiError):
    """Raised when a line of the rule file cannot be parsed.

    Attributes:
        line: The offending line, verbatim
        reason: What is wrong with it
    """

    def __init__(self, line: str, reason: str = "expected 'pattern | read groups | write groups'"):
        super().__init__(f"Invalid access rule {line!r}: {reason}")
        self.line = line
        self.reason = reason
