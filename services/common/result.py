"""
Outcome type returned by the services

A service call either succeeds with a value or fails with a message and an
error code. routes/api_helpers.ERROR_STATUS maps the codes to HTTP statuses;
Celery tasks and the inbound pipeline only log them.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar('T')


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Examples:
        Result.success(client)
        Result.failure("Client not found", code="CLIENT_NOT_FOUND")
    """

    ok: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def success(cls, data: T = None) -> 'Result[T]':
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str, code: Optional[str] = None) -> 'Result[T]':
        return cls(ok=False, error=error, error_code=code)

    @property
    def is_success(self) -> bool:
        return self.ok

    @property
    def is_failure(self) -> bool:
        return not self.ok

    def unwrap(self) -> T:
        """
        Raises:
            ValueError: On a failed result, carrying its message
        """
        if not self.ok:
            raise ValueError(f"Cannot unwrap a failure result: {self.error}")
        return self.data

    def unwrap_or(self, default: T) -> T:
        return self.data if self.ok else default

    def __bool__(self) -> bool:
        return self.ok

    def __repr__(self) -> str:
        if self.ok:
            return f"Result.success(data={self.data!r})"
        return f"Result.failure(error={self.error!r}, code={self.error_code!r})"
