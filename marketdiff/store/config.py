"""Store and entitlement configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import os


@dataclass(frozen=True)
class StoreConfig:
    """Configuration for the store collaborator and entitlement engine."""

    provider_name: str
    cache_path: str
    catalog_max_attempts: int
    catalog_backoff_seconds: float
    reconcile_timeout_seconds: Optional[float]
    listener_restart_backoff_seconds: float
    listener_max_restarts: Optional[int]


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def load_store_config(env: Optional[Mapping[str, str]] = None) -> StoreConfig:
    """Load :class:`StoreConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    provider_name = (env_mapping.get("STORE_PROVIDER") or "sandbox").strip().lower() or "sandbox"
    cache_path = env_mapping.get("ENTITLEMENT_CACHE_PATH") or "~/.marketdiff/entitlements.json"

    catalog_max_attempts = max(1, _to_int(env_mapping.get("STORE_CATALOG_MAX_ATTEMPTS"), default=3))
    catalog_backoff_seconds = max(0.0, _to_float(env_mapping.get("STORE_CATALOG_RETRY_BACKOFF"), default=1.0))

    # 0 disables the timeout
    reconcile_timeout = _to_float(env_mapping.get("STORE_RECONCILE_TIMEOUT"), default=10.0)

    listener_backoff = max(0.0, _to_float(env_mapping.get("STORE_LISTENER_RESTART_BACKOFF"), default=2.0))
    # negative means restart forever
    listener_max_restarts = _to_int(env_mapping.get("STORE_LISTENER_MAX_RESTARTS"), default=5)

    return StoreConfig(
        provider_name=provider_name,
        cache_path=cache_path,
        catalog_max_attempts=catalog_max_attempts,
        catalog_backoff_seconds=catalog_backoff_seconds,
        reconcile_timeout_seconds=reconcile_timeout if reconcile_timeout > 0 else None,
        listener_restart_backoff_seconds=listener_backoff,
        listener_max_restarts=listener_max_restarts if listener_max_restarts >= 0 else None,
    )
