"""Session storage backends.

``build_store`` picks the backend once, at app creation; everything else
talks to the ``SessionStore`` interface.
"""
from .base import SessionStore
from .memory import MemorySessionStore


def build_store(backend: str) -> SessionStore:
    if backend == 'memory':
        return MemorySessionStore()
    if backend == 'sql':
        from .sql import SqlSessionStore
        return SqlSessionStore()
    raise ValueError(f'Unknown STORAGE_BACKEND: {backend!r}')


__all__ = ['SessionStore', 'MemorySessionStore', 'build_store']
