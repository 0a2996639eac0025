"""Entitlement reconciliation: catalog, purchases, updates and shared state."""

from .cache import EntitlementCache, InMemoryEntitlementCache, JsonFileEntitlementCache
from .catalog import (
    PREMIUM_PRODUCT_IDS,
    PRODUCT_CATALOG,
    ProductCatalog,
    ProductDefinition,
    get_product_definition,
    grants_premium,
)
from .exceptions import (
    CatalogUnavailable,
    EntitlementError,
    EntitlementQueryFailed,
    PurchaseFailed,
    VerificationFailed,
)
from .ledger import TransactionLedger
from .listener import AdvisoryNotifier, TransactionListener
from .models import (
    BillingPeriod,
    EntitlementPhase,
    EntitlementSnapshot,
    Product,
    ProductID,
    PurchaseOutcome,
    PurchasePending,
    PurchaseSuccess,
    PurchaseUserCancelled,
    Transaction,
    Unverified,
    VerificationResult,
    Verified,
)
from .purchases import PurchaseExecutor
from .reconciler import EntitlementReconciler
from .service import EntitlementManager
from .state import EntitlementState
from .store import StoreClient

__all__ = [
    "PREMIUM_PRODUCT_IDS",
    "PRODUCT_CATALOG",
    "AdvisoryNotifier",
    "BillingPeriod",
    "CatalogUnavailable",
    "EntitlementCache",
    "EntitlementError",
    "EntitlementManager",
    "EntitlementPhase",
    "EntitlementQueryFailed",
    "EntitlementReconciler",
    "EntitlementSnapshot",
    "EntitlementState",
    "InMemoryEntitlementCache",
    "JsonFileEntitlementCache",
    "Product",
    "ProductCatalog",
    "ProductDefinition",
    "ProductID",
    "PurchaseExecutor",
    "PurchaseFailed",
    "PurchaseOutcome",
    "PurchasePending",
    "PurchaseSuccess",
    "PurchaseUserCancelled",
    "StoreClient",
    "Transaction",
    "TransactionLedger",
    "TransactionListener",
    "Unverified",
    "VerificationFailed",
    "VerificationResult",
    "Verified",
    "get_product_definition",
    "grants_premium",
]
