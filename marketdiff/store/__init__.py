"""Store collaborator configuration and implementations."""

from .config import StoreConfig, load_store_config
from .sandbox import LocalSandboxStore, create_store

__all__ = [
    "LocalSandboxStore",
    "StoreConfig",
    "create_store",
    "load_store_config",
]
