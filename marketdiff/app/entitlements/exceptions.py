"""Errors raised inside the entitlement subsystem.

None of these are fatal to the process. Each is recovered where it occurs;
only :class:`PurchaseFailed` is handed back to the caller so it can show a
message to the user.
"""
from __future__ import annotations


class EntitlementError(Exception):
    """Base class carrying a stable error code."""

    code = "entitlement_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CatalogUnavailable(EntitlementError):
    code = "catalog_unavailable"


class PurchaseFailed(EntitlementError):
    code = "purchase_failed"


class VerificationFailed(EntitlementError):
    code = "verification_failed"


class EntitlementQueryFailed(EntitlementError):
    code = "entitlement_query_failed"

    def __init__(self, product_id: str, message: str) -> None:
        super().__init__(message)
        self.product_id = product_id
