"""Error taxonomy for the tab engine.

Every error carries a short ``reason`` string that callers can match on
without parsing the human-readable message.
"""


class TabError(Exception):
    """Base class for all tab engine errors."""

    reason = "tab_error"

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""

    def to_dict(self) -> dict[str, str]:
        return {"reason": self.reason, "message": self.message}


class PreconditionError(TabError, ValueError):
    """Operation rejected because the tournament is not in the required state."""

    reason = "precondition_failed"


class NotFoundError(PreconditionError):
    """A referenced entity does not exist."""

    reason = "not_found"


class AuthorizationError(TabError, PermissionError):
    """Caller is not allowed to perform the action."""

    reason = "not_authorized"


class BallotValidationError(TabError, ValueError):
    """A ballot or result payload failed validation."""

    reason = "invalid_ballot"

    def __init__(self, message: str, field: str, reason: str | None = None):
        super().__init__(message, reason)
        self.field = field

    def to_dict(self) -> dict[str, str]:
        payload = super().to_dict()
        payload["field"] = self.field
        return payload
