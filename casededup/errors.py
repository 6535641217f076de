"""
Typed failures raised by the deduplication engine.

Every error carries a stable ``code`` so callers (controllers, the CLI) can
translate failures into user-facing messages without string matching.
Nothing in this package retries on any of these.
"""


class DeduplicationError(Exception):
    """Base class for all deduplication failures."""

    code = "DEDUPLICATION_ERROR"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class InvalidCriteriaError(DeduplicationError):
    """No usable search field was supplied."""

    code = "INVALID_CRITERIA"


class SearchFailedError(DeduplicationError):
    """The candidate query failed in the store."""

    code = "SEARCH_FAILED"


class MissingRationaleError(DeduplicationError):
    """A decision was submitted without a rationale."""

    code = "MISSING_RATIONALE"


class InvalidSelectionError(DeduplicationError):
    """The selected case was never shown to the decision-maker."""

    code = "INVALID_SELECTION"


class InvalidDecisionError(DeduplicationError):
    """The decision payload is malformed or names an unknown decision type."""

    code = "INVALID_DECISION"


class RecordFailedError(DeduplicationError):
    """The decision could not be recorded; nothing was written."""

    code = "RECORD_FAILED"


class PartialFailureError(DeduplicationError):
    """
    The audit entry was committed but the case stamp failed.

    Requires manual reconciliation. Retrying would write a second audit entry.
    """

    code = "PARTIAL_FAILURE"

    def __init__(self, message: str, audit_id: int = None):
        super().__init__(message)
        self.audit_id = audit_id

    def to_dict(self) -> dict:
        return {**super().to_dict(), "auditId": self.audit_id}


class HistoryReadError(DeduplicationError):
    """Audit history could not be read from the store."""

    code = "HISTORY_FAILED"
