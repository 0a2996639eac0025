"""API routes exposing entitlement state to the UI."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from ..entitlements import PurchaseFailed
from ..feature_gates import AccessContext, FeatureGateError, GatedContent
from ..schemas.entitlements import (
    AccessCheckRequest,
    AccessCheckResponse,
    EntitlementStatusResponse,
    ProductListResponse,
    PurchaseRequest,
    PurchaseResponse,
)
from ..services.entitlements import get_advisory_notifier, get_entitlement_manager

router = APIRouter(prefix="/api/entitlements", tags=["entitlements"])


def _status_response() -> EntitlementStatusResponse:
    manager = get_entitlement_manager()
    return EntitlementStatusResponse.from_snapshot(
        manager.snapshot(),
        is_bootstrapping=manager.is_bootstrapping,
        advisory=get_advisory_notifier().acknowledge(),
    )


@router.get("", response_model=EntitlementStatusResponse)
def get_status() -> EntitlementStatusResponse:
    return _status_response()


@router.get("/products", response_model=ProductListResponse)
def list_products() -> ProductListResponse:
    manager = get_entitlement_manager()
    return ProductListResponse(products=manager.products)


@router.post("/purchases", response_model=PurchaseResponse)
async def create_purchase(payload: PurchaseRequest) -> PurchaseResponse:
    manager = get_entitlement_manager()
    try:
        success = await manager.request_purchase(payload.product_id)
    except PurchaseFailed as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
    return PurchaseResponse(success=success, is_premium=manager.is_premium)


@router.post("/restore", response_model=EntitlementStatusResponse)
async def restore_purchases() -> EntitlementStatusResponse:
    manager = get_entitlement_manager()
    await manager.restore_purchases()
    return _status_response()


@router.post("/sign-out", response_model=EntitlementStatusResponse)
async def sign_out() -> EntitlementStatusResponse:
    manager = get_entitlement_manager()
    await manager.request_sign_out()
    return _status_response()


@router.post("/access-check", response_model=AccessCheckResponse)
def check_access(payload: AccessCheckRequest) -> AccessCheckResponse:
    manager = get_entitlement_manager()
    content = GatedContent(
        content_id=payload.content_id,
        kind=payload.kind,
        requires_premium=payload.requires_premium,
    )
    try:
        AccessContext(manager.snapshot()).require(content)
    except FeatureGateError as exc:
        raise exc.to_http_exception() from exc
    return AccessCheckResponse(allowed=True)
