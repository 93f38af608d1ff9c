"""
Error taxonomy. Every fatal error carries a stable `code`; the optional
`detail` is only rendered when debug output is enabled.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PlatformError(Exception):
    code = "internal_error"
    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_payload(self, debug: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if debug and self.detail:
            payload["detail"] = self.detail
        return payload


class ValidationError(PlatformError):
    code = "invalid_input"
    status_code = 400


class UnsupportedContentTypeError(ValidationError):
    code = "unsupported_content_type"


class UploadTooLargeError(ValidationError):
    code = "upload_too_large"
    status_code = 413


class AnnotationServiceError(PlatformError):
    """Transport failure, non-success status or empty reply from the annotation service."""

    code = "annotation_service_error"
    status_code = 502


class AnnotationResponseError(AnnotationServiceError):
    """Reply received but it does not contain usable markup."""

    code = "annotation_malformed_response"


class ContentNotFoundError(PlatformError):
    code = "content_not_found"
    status_code = 404


class SessionNotFoundError(PlatformError):
    code = "session_not_found"
    status_code = 404


class TrainingNotFoundError(PlatformError):
    code = "training_not_found"
    status_code = 404


class TrackingWriteError(PlatformError):
    code = "tracking_write_failed"
    status_code = 500
