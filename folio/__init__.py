"""
Folio: A block-based workspace editor core.

Keeps a tree of pages made of typed blocks, with undo/redo history and
debounced synchronization to a local cache and a remote document store.
"""

__version__ = "0.1.0"
__author__ = "Folio Project"

# Import main components
from .errors import CapacityExceededError, FolioError, PersistenceError
from .models import Block, BlockType, DocumentStore, Page, SaveStatus, UserProfile
from .editing import HistoryManager
from .persistence import (
    BasePersistence,
    DuckDBPersistence,
    HttpPersistence,
    InMemoryPersistence,
    LocalCache,
    build_persistence
)
from .sync import SyncCoordinator
from .workspace import WorkspaceSession

__all__ = [
    "CapacityExceededError",
    "FolioError",
    "PersistenceError",
    "Block",
    "BlockType",
    "DocumentStore",
    "Page",
    "SaveStatus",
    "UserProfile",
    "HistoryManager",
    "BasePersistence",
    "DuckDBPersistence",
    "HttpPersistence",
    "InMemoryPersistence",
    "LocalCache",
    "build_persistence",
    "SyncCoordinator",
    "WorkspaceSession"
]
