"""Startup selection of the storage backend with tiered fallback."""

import logging
from collections.abc import Callable

from supabase import create_client

from pi_paywall.adapters.memory_store import InMemoryStore
from pi_paywall.adapters.sqlite_store import SqliteStore
from pi_paywall.adapters.supabase_store import SupabaseStore
from pi_paywall.config import Settings, StoreBackend
from pi_paywall.services.persistence import PersistenceAdapter

_logger = logging.getLogger(__name__)

STORE_TIERS: tuple[StoreBackend, ...] = ("supabase", "sqlite", "memory")


def build_store(settings: Settings) -> PersistenceAdapter:
    """Return the first backend, from the configured tier down, that initializes."""
    factories: dict[StoreBackend, Callable[[], PersistenceAdapter]] = {
        "supabase": lambda: _create_supabase_store(settings),
        "sqlite": lambda: SqliteStore.create(settings.sqlite_path),
        "memory": InMemoryStore,
    }
    for backend in STORE_TIERS[STORE_TIERS.index(settings.store_backend) :]:
        try:
            store = factories[backend]()
            store.initialize()
        except Exception as exc:
            _logger.warning(
                "Store backend %s unavailable, falling back: %s",
                backend,
                exc,
            )
            continue
        _logger.info("Using %s store backend", backend)
        return store
    # The in-memory tier cannot fail to initialize.
    raise RuntimeError("No store backend available")


def _create_supabase_store(settings: Settings) -> SupabaseStore:
    if not settings.supabase_url or not settings.supabase_service_key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
    client = create_client(settings.supabase_url, settings.supabase_service_key)
    return SupabaseStore(client)
