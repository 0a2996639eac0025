"""Domain models for products, transactions, and entitlement state."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ProductID(str, Enum):
    """Closed set of purchasable product identifiers.

    Declaration order is the order entitlements are reconciled in.
    """

    PREMIUM_MONTHLY = "com.maOptions.premium.monthly"
    PREMIUM_YEARLY = "com.maOptions.premium.yearly"
    LIFETIME_ACCESS = "com.maOptions.lifetime"


class BillingPeriod(str, Enum):
    """Supported billing frequencies."""

    MONTHLY = "monthly"
    ANNUAL = "annual"
    LIFETIME = "lifetime"


class Product(BaseModel):
    """Catalog entry returned by the platform store."""

    id: str
    display_name: str
    display_price: str
    billing_period: BillingPeriod

    model_config = ConfigDict(frozen=True)


class Transaction(BaseModel):
    """A purchase record delivered by the store."""

    transaction_id: str
    product_id: str
    purchase_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    revocation_date: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_revoked(self) -> bool:
        return self.revocation_date is not None


@dataclass(frozen=True)
class Verified:
    """Transaction whose signature checked out."""

    transaction: Transaction


@dataclass(frozen=True)
class Unverified:
    """Transaction that failed verification and must never grant access."""

    transaction: Transaction
    reason: str


VerificationResult = Union[Verified, Unverified]


@dataclass(frozen=True)
class PurchaseSuccess:
    verification: VerificationResult


@dataclass(frozen=True)
class PurchaseUserCancelled:
    """Purchase sheet dismissed by the user."""


@dataclass(frozen=True)
class PurchasePending:
    """Purchase awaiting an external action such as parental approval."""


PurchaseOutcome = Union[PurchaseSuccess, PurchaseUserCancelled, PurchasePending]


class EntitlementPhase(str, Enum):
    """Whether entitlements have been reconciled against the store yet."""

    UNKNOWN = "unknown"
    KNOWN = "known"


class EntitlementSnapshot(BaseModel):
    """Point-in-time copy of the entitlement state handed to observers."""

    is_premium: bool = False
    purchased_product_ids: FrozenSet[str] = Field(default_factory=frozenset)
    phase: EntitlementPhase = EntitlementPhase.UNKNOWN
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)
