"""Error taxonomy shared by the ingestion pipeline and the HTTP layer.

Each error carries a short machine readable ``code`` that is returned to the
client, and an optional ``detail`` that is only logged.
"""

from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    status_code: int = 500
    default_code: str = "internal_error"

    def __init__(self, code: Optional[str] = None, *, detail: Optional[str] = None) -> None:
        self.code = code or self.default_code
        self.detail = detail
        super().__init__(self.code if detail is None else f"{self.code}: {detail}")


class BadRequestError(ServiceError):
    status_code = 400
    default_code = "bad_request"


class PayloadTooLargeError(BadRequestError):
    status_code = 413
    default_code = "upload_too_large"


class ForbiddenError(ServiceError):
    status_code = 403
    default_code = "forbidden"


class NotFoundError(ServiceError):
    status_code = 404
    default_code = "not_found"


class ProbeError(ServiceError):
    status_code = 422
    default_code = "probe_failed"


class PublishError(ServiceError):
    status_code = 502
    default_code = "publish_failed"


class StagingError(ServiceError):
    status_code = 500
    default_code = "staging_failed"


__all__ = [
    "ServiceError",
    "BadRequestError",
    "PayloadTooLargeError",
    "ForbiddenError",
    "NotFoundError",
    "ProbeError",
    "PublishError",
    "StagingError",
]
