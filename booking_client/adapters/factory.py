import os

from booking_client.domain.cache import CacheStore, CacheTtls
from .ports import SchedulingProvider


def _ttl(env_var: str, default: float) -> float:
    raw = os.environ.get(env_var)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"Invalid TTL for {env_var}: {raw!r}") from None
    if value < 0:
        raise ValueError(f"{env_var} must be >= 0, got {value}")
    return value


def load_ttls() -> CacheTtls:
    """Per-data-class TTLs, overridable with BOOKING_TTL_* (seconds)."""
    defaults = CacheTtls()
    return CacheTtls(
        categories=_ttl("BOOKING_TTL_CATEGORIES", defaults.categories),
        services=_ttl("BOOKING_TTL_SERVICES", defaults.services),
        staff=_ttl("BOOKING_TTL_STAFF", defaults.staff),
        addons=_ttl("BOOKING_TTL_ADDONS", defaults.addons),
        availability=_ttl("BOOKING_TTL_AVAILABILITY", defaults.availability),
    )


def create_cache_store(backend: str | None = None) -> CacheStore:
    """
    Factory: create the cache over the configured storage backend.

    The backend can be passed explicitly or read from the
    BOOKING_CACHE_BACKEND env var. Defaults to "sqlite".
    """
    backend = backend or os.environ.get("BOOKING_CACHE_BACKEND", "sqlite")

    if backend == "sqlite":
        from .sqlite_storage import SqliteStorage

        db_path = os.environ.get("BOOKING_CACHE_PATH", "data/booking_cache.db")
        if os.path.dirname(db_path):
            os.makedirs(os.path.dirname(db_path), exist_ok=True)
        return CacheStore(SqliteStorage(db_path=db_path))

    if backend == "memory":
        from .memory_storage import InMemoryStorage

        return CacheStore(InMemoryStorage())

    raise ValueError(f"Unknown cache backend: {backend!r}")


def create_provider(kind: str | None = None) -> SchedulingProvider:
    """
    Factory: create the scheduling provider adapter.

    Reads BOOKING_PROVIDER ("http" or "simulator", default "simulator").
    The HTTP adapter needs BOOKING_PROVIDER_URL and optionally
    BOOKING_PROVIDER_API_KEY.
    """
    kind = kind or os.environ.get("BOOKING_PROVIDER", "simulator")

    if kind == "http":
        from .provider_client import ProviderClient

        return ProviderClient(
            base_url=os.environ["BOOKING_PROVIDER_URL"],
            api_key=os.environ.get("BOOKING_PROVIDER_API_KEY", ""),
        )

    if kind == "simulator":
        from .simulator_provider import SimulatorSchedulingProvider

        return SimulatorSchedulingProvider()

    raise ValueError(f"Unknown provider: {kind!r}")
