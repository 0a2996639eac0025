"""Helpers for enforcing premium access on content."""
from __future__ import annotations

from .content import GatedContent
from .exceptions import FeatureGateError


def has_access(is_premium: bool, content: GatedContent) -> bool:
    """Return whether a user with the given premium flag may open ``content``."""

    return is_premium or not content.is_premium_only


def require_access(
    is_premium: bool,
    content: GatedContent,
    *,
    error_code: str = "premium_required",
    message: str | None = None,
) -> None:
    """Ensure ``content`` is unlocked before proceeding.

    Parameters
    ----------
    is_premium:
        The current entitlement flag, as read from :class:`EntitlementState`.
    content:
        The video, blog post or trading tool being opened.
    error_code:
        Optional override for the surfaced error code when access is denied.
        Defaults to ``"premium_required"``.
    message:
        Optional human-friendly message explaining the failure. If omitted, a
        default message mentioning the content kind is used.
    """

    if has_access(is_premium, content):
        return

    failure_message = message or f"Premium access is required for this {content.kind.value.replace('_', ' ')}."
    raise FeatureGateError(
        code=error_code,
        message=failure_message,
        detail={"content_id": content.content_id, "content_kind": content.kind.value},
    )
