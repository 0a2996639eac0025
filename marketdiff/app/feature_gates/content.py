"""Gated content descriptors for courses, blog posts and trading tools."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ContentKind(str, Enum):
    """Kinds of content the app unlocks with premium access."""

    VIDEO = "video"
    BLOG_POST = "blog_post"
    TRADING_TOOL = "trading_tool"


class GatedContent(BaseModel):
    """Minimal description of a piece of content for access decisions.

    Trading tools always require premium regardless of ``requires_premium``.
    """

    content_id: str
    kind: ContentKind
    requires_premium: bool = True

    model_config = ConfigDict(frozen=True)

    @property
    def is_premium_only(self) -> bool:
        if self.kind == ContentKind.TRADING_TOOL:
            return True
        return self.requires_premium
