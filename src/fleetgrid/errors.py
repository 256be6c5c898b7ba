"""Error taxonomy for the query adapter and the write protocol.

Concurrency conflicts are deliberately absent here: a stale write comes back
as a ``Rejected`` outcome (see ``fleetgrid.concurrency.outcomes``), not as an
exception.
"""

from typing import Any, Dict, List, Optional


class FleetGridError(Exception):
    """Base class for fleetgrid errors."""


class UnknownColumn(FleetGridError, KeyError):
    """A filter or sort column has no registered rule."""

    def __init__(self, column: Any, purpose: str = "column"):
        self.column = column
        self.purpose = purpose
        super().__init__(f"Unknown {purpose}: {column!r}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class ValidationError(FleetGridError, ValueError):
    """Caller input failed validation. Never retried."""

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        self.errors = errors
        if message is None:
            message = "; ".join(f"{e['field']}: {e['message']}" for e in errors) or "invalid input"
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, exc: Any) -> "ValidationError":
        """Build from a ``pydantic.ValidationError``."""
        errors = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
            errors.append({"field": field, "message": err.get("msg", "invalid value")})
        return cls(errors)


class RecordNotFound(FleetGridError, LookupError):
    """No record exists with the given identifier."""

    def __init__(self, record_id: Any):
        self.record_id = record_id
        super().__init__(f"Record not found: {record_id}")


class StoreUnavailable(FleetGridError):
    """The persistence store could not be reached or timed out."""
