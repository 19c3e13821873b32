"""
Backends

Storage implementations behind the Backend interface, plus the
module-level registry that hands Criteria and Document their backend.

For testing, use set_backend() to inject a backend that will be used
instead of the one named by config.
"""

from docstore.backends.base import Backend
from docstore.backends.memory import MemoryBackend
from docstore.backends.postgres import PostgresBackend
from docstore.config import config
from docstore.errors import UnknownBackend

BACKENDS = {
    "memory": MemoryBackend,
    "postgres": PostgresBackend,
}

_backend_override: Backend | None = None
_default_backend: Backend | None = None


def set_backend(backend: Backend) -> None:
    """Use this backend for all subsequent operations."""
    global _backend_override
    _backend_override = backend


def clear_backend() -> None:
    """Clear the override, restoring the configured backend."""
    global _backend_override
    _backend_override = None


def get_backend() -> Backend:
    """Return the override if set, else the backend named by config."""
    global _default_backend
    if _backend_override is not None:
        return _backend_override
    if _default_backend is None:
        try:
            _default_backend = BACKENDS[config.backend]()
        except KeyError:
            raise UnknownBackend(
                f"Unknown backend: {config.backend}. Valid: {list(BACKENDS.keys())}"
            ) from None
    return _default_backend


__all__ = [
    "Backend",
    "MemoryBackend",
    "PostgresBackend",
    "clear_backend",
    "get_backend",
    "set_backend",
]
