# src/daybook/core/errors.py

"""
Error taxonomy shared by services, the procedure layer and the HTTP transport.

Storage errors (sqlite3.Error) are not wrapped: they propagate as-is and the
transport turns them into an opaque 500.
"""

from __future__ import annotations

from dataclasses import dataclass


class DaybookError(Exception):
    """Base class for errors the API surface knows how to report."""


@dataclass(frozen=True, slots=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationFailed(DaybookError):
    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.message}" for e in self.errors) or "invalid input"
        super().__init__(summary)

    @classmethod
    def single(cls, field: str, message: str) -> ValidationFailed:
        return cls([FieldError(field=field, message=message)])


class NotFound(DaybookError):
    """
    Target does not exist or belongs to another user.

    The message is the same in both cases.
    """

    def __init__(self, kind: str, ident: int | None = None) -> None:
        self.kind = kind
        self.ident = ident
        suffix = f" {ident}" if ident is not None else ""
        super().__init__(f"{kind}{suffix} not found")


class UnknownProcedure(DaybookError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown procedure: {name}")
