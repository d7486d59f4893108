"""Service error hierarchy for thumbnail generation.

This module defines the exception hierarchy for service-level errors:
- ServiceError: Base for all service errors
- ValidationError: Invalid request fields, surfaced before a job exists
- ProviderFailure: One adapter attempt failed (recovered by the orchestrator)
- AllProvidersFailed: Every adapter in the chain failed (terminal)
- PublishFailure: Generation worked but the asset store rejected the bytes
- RateLimitExceeded: Owner exceeded the per-window request ceiling
"""

from datetime import datetime
from enum import Enum
from typing import Optional


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class ValidationError(ServiceError):
    """Request fields are missing or invalid. No job is created."""

    pass


class ProviderFailureKind(str, Enum):
    """Normalized reasons a single adapter attempt can fail."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    MALFORMED_RESPONSE = "malformed_response"
    NO_IMAGE = "no_image"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


class ProviderFailure(ServiceError):
    """One adapter's call failed.

    Adapters raise only this error, so the orchestrator never sees an
    unstructured exception from a provider.
    """

    def __init__(
        self,
        provider_id: str,
        kind: ProviderFailureKind,
        reason: str,
        http_status: Optional[int] = None,
    ):
        self.provider_id = provider_id
        self.kind = kind
        self.reason = reason
        self.http_status = http_status
        super().__init__(f"{provider_id}: {kind.value}: {reason}")

    def to_dict(self) -> dict:
        return {
            "provider": self.provider_id,
            "kind": self.kind.value,
            "reason": self.reason,
            "http_status": self.http_status,
        }


class AllProvidersFailed(ServiceError):
    """Every adapter in the chain failed for one request."""

    def __init__(self, failures: list[ProviderFailure]):
        self.failures = failures
        if failures:
            details = "; ".join(str(f) for f in failures)
            message = f"All {len(failures)} image providers failed: {details}"
        else:
            message = "No image providers are configured"
        super().__init__(message)

    @property
    def provider_ids(self) -> list[str]:
        return [f.provider_id for f in self.failures]


class PublishFailure(ServiceError):
    """Asset store rejected an upload after a successful generation."""

    def __init__(self, message: str, retryable: bool = False):
        self.retryable = retryable
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"stage": "publish", "reason": str(self), "retryable": self.retryable}


class RateLimitExceeded(ServiceError):
    """Owner exceeded the generation request ceiling for the current window."""

    def __init__(self, owner_id: str, limit: int, reset_time: datetime):
        self.owner_id = owner_id
        self.limit = limit
        self.reset_time = reset_time
        super().__init__(
            f"Rate limit of {limit} requests exceeded; window resets at {reset_time.isoformat()}"
        )
