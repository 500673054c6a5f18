"""Structured errors surfaced to API callers.

Every error carries a machine-readable ``kind`` plus a human message. Only the
raw model text (for invalid upstream output) is exposed as diagnostics.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

RAW_OUTPUT_PREVIEW_CHARS = 2000


class PlanServiceError(Exception):
    """Base class for errors returned to the caller."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str, *, kind: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if kind:
            self.kind = kind

    def to_dict(self) -> Dict[str, Any]:
        return {"error": {"kind": self.kind, "message": self.message}}


class EntitlementError(PlanServiceError):
    """Missing, unpaid or insufficient payment reference."""

    kind = "entitlement_required"
    status_code = 402


class CompletionError(PlanServiceError):
    """The completion provider could not be reached or returned nothing."""

    kind = "completion_failed"
    status_code = 502


class InvalidUpstreamOutputError(PlanServiceError):
    """Model output is not JSON, even after rescue parsing."""

    kind = "invalid_upstream_output"
    status_code = 502

    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text or ""

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        preview = self.raw_text[:RAW_OUTPUT_PREVIEW_CHARS]
        payload["error"]["raw_output"] = preview
        payload["error"]["raw_output_truncated"] = len(self.raw_text) > len(preview)
        return payload


class DeliveryError(PlanServiceError):
    """Mail delivery failed; content can be re-sent without regenerating."""

    kind = "delivery_failed"
    status_code = 502

    def __init__(self, message: str, attempts: int = 1) -> None:
        super().__init__(message)
        self.attempts = attempts

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["error"]["attempts"] = self.attempts
        return payload


class InvalidRequestError(PlanServiceError):
    """Request is well-formed JSON but missing required delivery content."""

    kind = "invalid_request"
    status_code = 400
