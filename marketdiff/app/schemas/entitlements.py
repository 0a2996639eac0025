"""API schemas for entitlement endpoints."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..entitlements import EntitlementPhase, EntitlementSnapshot, Product
from ..feature_gates import ContentKind


class EntitlementStatusResponse(BaseModel):
    is_premium: bool = Field(alias="isPremium")
    purchased_product_ids: List[str] = Field(alias="purchasedProductIds")
    phase: EntitlementPhase
    is_bootstrapping: bool = Field(alias="isBootstrapping", default=False)
    advisory: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: EntitlementSnapshot,
        *,
        is_bootstrapping: bool = False,
        advisory: Optional[str] = None,
    ) -> "EntitlementStatusResponse":
        return cls(
            is_premium=snapshot.is_premium,
            purchased_product_ids=sorted(snapshot.purchased_product_ids),
            phase=snapshot.phase,
            is_bootstrapping=is_bootstrapping,
            advisory=advisory,
        )


class ProductListResponse(BaseModel):
    products: list[Product]

    model_config = ConfigDict(populate_by_name=True)


class PurchaseRequest(BaseModel):
    product_id: str = Field(alias="productId")

    model_config = ConfigDict(populate_by_name=True)


class PurchaseResponse(BaseModel):
    success: bool
    is_premium: bool = Field(alias="isPremium")

    model_config = ConfigDict(populate_by_name=True)


class AccessCheckRequest(BaseModel):
    content_id: str = Field(alias="contentId")
    kind: ContentKind
    requires_premium: bool = Field(alias="requiresPremium", default=True)

    model_config = ConfigDict(populate_by_name=True)


class AccessCheckResponse(BaseModel):
    allowed: bool

    model_config = ConfigDict(populate_by_name=True)
