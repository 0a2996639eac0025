"""Errors raised when premium content is opened without an entitlement."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status


class FeatureGateError(Exception):
    """Locked content surfaced to the UI as a paywall prompt."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: int = status.HTTP_403_FORBIDDEN,
        detail: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.detail: Dict[str, Any] = dict(detail or {})

    @property
    def payload(self) -> Mapping[str, Any]:
        """Body for JSON responses: ``error``, ``message`` and the content details."""

        return {"error": self.code, "message": self.message, **self.detail}

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=dict(self.payload))
