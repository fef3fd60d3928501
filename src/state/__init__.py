"""
Session state and credential persistence.

`session_store.SessionStore` is imported from its module directly; this
package only re-exports the leaf types the API client also depends on.
"""

from .models import Session, SessionStatus
from .storage import EncryptedFileStorage, JsonFileStorage, MemoryStorage

__all__ = [
    "EncryptedFileStorage",
    "JsonFileStorage",
    "MemoryStorage",
    "Session",
    "SessionStatus",
]
