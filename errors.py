"""
Error taxonomy for the election API.

Every failure carries a human readable message and the HTTP status it is
reported with. Raise sites may override the default status since the same
condition maps to different statuses on different endpoints.
"""

from typing import Optional


class ElectionError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class MissingField(ElectionError):
    status_code = 400


class NotFound(ElectionError):
    status_code = 417


class InvalidAge(ElectionError):
    status_code = 409


class DuplicateVoter(ElectionError):
    status_code = 409


class DuplicateCandidate(ElectionError):
    status_code = 409


class AlreadyVoted(ElectionError):
    status_code = 423


class InvalidInput(ElectionError):
    status_code = 400


class InvalidInterval(ElectionError):
    status_code = 424


class DuplicateNullifier(ElectionError):
    status_code = 409


class InvalidProof(ElectionError):
    status_code = 425


class MalformedShare(ElectionError):
    status_code = 400


class InvalidShareProof(ElectionError):
    status_code = 425


class InvalidEpsilon(ElectionError):
    status_code = 400


class InvalidDelta(ElectionError):
    status_code = 400


class BudgetExceeded(ElectionError):
    status_code = 403


class InvalidTimestamp(ElectionError):
    status_code = 400


class DuplicateBallot(ElectionError):
    status_code = 409


class InvalidAlpha(ElectionError):
    status_code = 400


class UnsupportedAuditType(ElectionError):
    status_code = 400


class RouteNotFound(ElectionError):
    status_code = 404
