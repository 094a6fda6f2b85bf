"""Exception hierarchy for tournament operations.

Services raise these; the HTTP layer turns them into JSON error responses.
A rejected operation never leaves the tournament state partially changed.
"""

from typing import Optional


class TrackerError(Exception):
    """Base exception for tournament operations."""

    status_code = 400

    def __init__(self, message: str, rule: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.rule = rule

    def to_dict(self):
        payload = {'error': self.message}
        if self.rule:
            payload['rule'] = self.rule
        return payload

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, rule={self.rule!r})"


class ValidationError(TrackerError):
    """Malformed or rule-violating round, roster or settings input."""


class NotFoundError(TrackerError):
    """An operation referenced an unknown player or group id."""

    status_code = 404


class LockedError(TrackerError):
    """Grouping was changed after rounds were recorded."""

    status_code = 403
