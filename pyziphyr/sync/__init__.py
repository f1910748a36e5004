"""Sync engine for pyziphyr - clone and pull of repository mirrors."""

from .differ import Differ, DownloadDecision, DownloadQueue, DownloadReason
from .engine import SyncEngine
from .fingerprint import local_fingerprint, remote_fingerprint
from .ledger import LedgerManager, SyncLedger
from .mirror import MirrorDirectory
from .operations import SyncOperations
from .session import SyncResult, SyncSession, SyncState
from .tree_walker import TreeWalker

__all__ = [
    "SyncEngine",
    "SyncOperations",
    "SyncSession",
    "SyncResult",
    "SyncState",
    "TreeWalker",
    "Differ",
    "DownloadDecision",
    "DownloadQueue",
    "DownloadReason",
    "LedgerManager",
    "SyncLedger",
    "MirrorDirectory",
    "local_fingerprint",
    "remote_fingerprint",
]
