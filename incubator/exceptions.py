# =============================================================================
# incubator/exceptions.py - Domain errors + FastAPI handlers
# =============================================================================
# Every error the timeline core raises derives from IncubatorError so the API
# layer can render it uniformly as {"detail", "code", "details"}.
# =============================================================================

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class IncubatorError(Exception):
    """
    Base exception for the incubator timeline core.

    Carries a machine-readable code and the HTTP status the API should use.
    """

    def __init__(
        self,
        message: str,
        code: str = "INCUBATOR_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result: dict[str, Any] = {
            "detail": self.message,
            "code": self.code,
        }
        if self.details:
            result["details"] = self.details
        return result


class RecordNotFound(IncubatorError):
    """Raised when a looked-up row does not exist."""

    def __init__(self, model: str, record_id: Any):
        super().__init__(
            message=f"{model} not found: {record_id}",
            code="NOT_FOUND",
            status_code=404,
            details={"model": model, "id": record_id},
        )


# =============================================================================
# Entity validation
# =============================================================================

class ValidationError(IncubatorError):
    """Entity-level validation failure; blocks the save entirely."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=422,
            details={"field": field} if field else None,
        )
        self.field = field


class DescriptionInvalid(ValidationError):
    """Raised when a timeline event description is missing or too long."""

    def __init__(self, reason: str):
        super().__init__(f"Description {reason}", field="description")


# =============================================================================
# Attachment item errors (reported per item, see file_sync.SyncResult)
# =============================================================================

class MalformedAttachmentData(IncubatorError):
    """Raised when serialized link data can't be parsed into link records."""

    def __init__(self, error: str):
        super().__init__(
            message=f"Malformed attachment data: {error}",
            code="MALFORMED_ATTACHMENT_DATA",
            status_code=422,
            details={"error": error},
        )


class ContentMissing(IncubatorError):
    """Raised when a new-file descriptor has no uploaded content for its key."""

    def __init__(self, content_key: str):
        super().__init__(
            message=f"No file content supplied for key: {content_key}",
            code="CONTENT_MISSING",
            status_code=422,
            details={"content_key": content_key},
        )


class AttachmentNotFound(IncubatorError):
    """Raised when an attachment reference doesn't belong to the event."""

    def __init__(self, event_id: int | None, identifier: Any):
        super().__init__(
            message=f"Attachment {identifier} not found on timeline event {event_id}",
            code="ATTACHMENT_NOT_FOUND",
            status_code=404,
            details={"timeline_event_id": event_id, "identifier": identifier},
        )


# =============================================================================
# Data-integrity errors (fatal to the operation, logged when raised)
# =============================================================================

class NoOwningFounder(IncubatorError):
    """Raised when an event has no founder-owners to derive a startup from."""

    def __init__(self, event_id: int | None):
        super().__init__(
            message=f"TimelineEvent#{event_id} does not have any linked founders",
            code="NO_OWNING_FOUNDER",
            status_code=500,
            details={"timeline_event_id": event_id},
        )


class ScoreOutOfRange(IncubatorError):
    """Raised when a floored score has no grade label."""

    def __init__(self, score: float):
        super().__init__(
            message=f"Score {score} does not map to a grade",
            code="SCORE_OUT_OF_RANGE",
            status_code=500,
            details={"score": score},
        )


class AlreadyImproved(IncubatorError):
    """Raised when either side of an improvement link is already taken."""

    def __init__(self, improved_id: int | None, improver_id: int | None, reason: str):
        super().__init__(
            message=reason,
            code="ALREADY_IMPROVED",
            status_code=409,
            details={"improved_id": improved_id, "improver_id": improver_id},
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def incubator_exception_handler(
    request: Request,
    exc: IncubatorError
) -> JSONResponse:
    """Convert IncubatorError to JSON response."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
