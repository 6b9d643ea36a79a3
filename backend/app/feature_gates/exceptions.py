"""Errors raised when a gated request cannot proceed."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status

from ..entitlements.models import PlanKey


@dataclass
class FeatureGateError(Exception):
    """A refused request, carrying what the client needs to recover.

    ``upgrade_to`` names the cheapest plan that would allow the request and
    ``retry_after_seconds`` becomes a ``Retry-After`` header for rate limits.
    """

    code: str
    message: str
    status_code: int = status.HTTP_403_FORBIDDEN
    detail: Mapping[str, Any] = field(default_factory=dict)
    upgrade_to: Optional[PlanKey] = None
    retry_after_seconds: Optional[int] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    @property
    def payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "message": self.message, **self.detail}
        if self.upgrade_to is not None:
            body["upgrade_to"] = self.upgrade_to.value
        if self.retry_after_seconds is not None:
            body["retry_after"] = self.retry_after_seconds
        return body

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        if self.retry_after_seconds is None:
            return None
        return {"Retry-After": str(self.retry_after_seconds)}

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.payload, headers=self.headers)
