"""Exceptions raised by the issue panel."""

from typing import Iterable, Optional, Union


class IssuePanelError(Exception):
    """Base class for issue panel errors."""

    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.errors = [message]


class NotFoundError(IssuePanelError):
    """A primary entity (issue, comment, filter) does not exist."""

    http_status = 404

    @classmethod
    def for_key(cls, kind: str, key: object) -> "NotFoundError":
        return cls(f"{kind} not found: {key}")


class ValidationError(IssuePanelError):
    """A mutation rejected its input."""

    def __init__(self, errors: Union[str, Iterable[str]], http_status: Optional[int] = None) -> None:
        messages = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(messages))
        self.errors = messages
        self.http_status = http_status or 400


class ForbiddenError(IssuePanelError):
    """The current user may not perform the requested operation."""

    http_status = 403
