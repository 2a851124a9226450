"""
Runtime configuration for Mission Control.
Settings come from the environment (optionally a .env file); accessors re-read the
environment so tests and long-running processes observe changes.
"""

import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_number(name: str, default, cast):
    """Parse a numeric env var, keeping the default when malformed (validate_ops_config() reports it)."""
    try:
        return cast(os.getenv(name, str(default)))
    except ValueError:
        return default


# Row store configuration
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
ROW_STORE_PROVIDER = os.getenv("ROW_STORE_PROVIDER", "supabase")  # supabase|memory
STORE_REQUEST_TIMEOUT_SEC = _env_number("STORE_REQUEST_TIMEOUT_SEC", 10.0, float)

# Heartbeat runner
HEARTBEAT_INTERVAL_SEC = _env_number("HEARTBEAT_INTERVAL_SEC", 300, int)

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Version string
VERSION = "1.0.0"

REQUIRED_STORE_ENV = ["SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"]

# Process-wide stores, created lazily
_memory_store = None
_supabase_store = None


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def get_store_provider() -> str:
    """Get the configured row store provider (supabase|memory)."""
    return os.getenv("ROW_STORE_PROVIDER", "supabase").lower()


def list_missing_store_env() -> List[str]:
    """Return the names of required Supabase env vars that are unset."""
    if get_store_provider() == "memory":
        return []
    return [name for name in REQUIRED_STORE_ENV if not os.getenv(name)]


def has_store_env() -> bool:
    """Check whether the row store is configured."""
    return not list_missing_store_env()


def get_request_timeout() -> float:
    """Get the per-request timeout for row store HTTP calls, in seconds."""
    return float(os.getenv("STORE_REQUEST_TIMEOUT_SEC", str(STORE_REQUEST_TIMEOUT_SEC)))


def get_heartbeat_interval() -> int:
    """Get the heartbeat runner interval in seconds."""
    return int(os.getenv("HEARTBEAT_INTERVAL_SEC", str(HEARTBEAT_INTERVAL_SEC)))


def get_row_store():
    """Get the configured row store implementation. Returns None if the store is not configured."""
    global _memory_store, _supabase_store

    if not has_store_env():
        return None

    if get_store_provider() == "memory":
        if _memory_store is None:
            from .memory_store import InMemoryRowStore
            _memory_store = InMemoryRowStore()
        return _memory_store

    url = os.environ["SUPABASE_URL"]
    service_role_key = os.environ["SUPABASE_SERVICE_ROLE_KEY"]
    timeout = get_request_timeout()

    # reuse the HTTP session until the connection settings change
    if _supabase_store is None or _supabase_store.settings != (url, service_role_key, timeout):
        from .supabase_store import SupabaseRestStore
        if _supabase_store is not None:
            _supabase_store.close()
        _supabase_store = SupabaseRestStore(url=url, service_role_key=service_role_key, timeout=timeout)
    return _supabase_store


def validate_ops_config() -> List[str]:
    """Validate ops configuration and return any issues."""
    issues = []

    provider = get_store_provider()
    if provider not in ["supabase", "memory"]:
        issues.append(f"Invalid ROW_STORE_PROVIDER: {provider}")

    missing = list_missing_store_env()
    if missing:
        issues.append(f"Missing required Supabase env var(s): {', '.join(missing)}")

    try:
        if get_heartbeat_interval() < 1:
            issues.append("HEARTBEAT_INTERVAL_SEC must be >= 1")
    except ValueError:
        issues.append("HEARTBEAT_INTERVAL_SEC must be an integer")

    try:
        if get_request_timeout() <= 0:
            issues.append("STORE_REQUEST_TIMEOUT_SEC must be > 0")
    except ValueError:
        issues.append("STORE_REQUEST_TIMEOUT_SEC must be a number")

    return issues


def reset_memory_store(store: Optional[object] = None):
    """Replace (or clear) the process-wide in-memory store and drop the cached Supabase store."""
    global _memory_store, _supabase_store
    _memory_store = store
    if _supabase_store is not None:
        _supabase_store.close()
        _supabase_store = None
