"""Convenience wrapper around entitlement snapshots for feature gating."""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List

from ..entitlements import EntitlementSnapshot
from .content import GatedContent
from .enforcement import has_access, require_access


@dataclass(frozen=True)
class AccessContext:
    """Facade exposing gating-centric helpers for the current entitlements."""

    snapshot: EntitlementSnapshot

    @property
    def is_premium(self) -> bool:
        return self.snapshot.is_premium

    @property
    def purchased_product_ids(self) -> FrozenSet[str]:
        return self.snapshot.purchased_product_ids

    def can_access(self, content: GatedContent) -> bool:
        return has_access(self.snapshot.is_premium, content)

    def require(self, content: GatedContent, *, error_code: str = "premium_required") -> None:
        """Raise :class:`FeatureGateError` when ``content`` is locked."""

        require_access(self.snapshot.is_premium, content, error_code=error_code)

    def locked(self, contents: Iterable[GatedContent]) -> List[GatedContent]:
        """Return the items that should render behind a paywall."""

        return [content for content in contents if not self.can_access(content)]
