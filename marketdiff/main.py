"""FastAPI application serving entitlement state to the app's UI layer."""
from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketdiff.app.routes.entitlements import router as entitlements_router
from marketdiff.app.services.entitlements import get_entitlement_manager

load_dotenv()

logger = logging.getLogger("entitlements")

app = FastAPI(title="Market Differentials API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(entitlements_router)


@app.on_event("startup")
async def bootstrap_entitlements() -> None:
    manager = get_entitlement_manager()
    is_premium = await manager.bootstrap()
    manager.start_listener()
    logger.info("Entitlements bootstrapped", extra={"is_premium": is_premium})


@app.on_event("shutdown")
async def stop_entitlements() -> None:
    await get_entitlement_manager().shutdown()


@app.get("/health")
def health() -> dict:
    manager = get_entitlement_manager()
    return {"status": "ok", "bootstrapping": manager.is_bootstrapping}
