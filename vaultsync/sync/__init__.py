"""Snapshot sync engine - archive, extract, diff and reconcile vault trees."""

from .archive import ArchiveBlob, Archiver, Extractor
from .comparator import DiffEngine, DiffResult, SyncAction, SyncDecision
from .engine import Phase, PullResult, PushResult, SyncEngine
from .exclusion import ExclusionSet
from .operations import Reconciler, ReconcileResult
from .scanner import PathWalker, walk_tree
from .settings import SyncSettings

__all__ = [
    "SyncEngine",
    "SyncSettings",
    "Phase",
    "PushResult",
    "PullResult",
    "PathWalker",
    "walk_tree",
    "ExclusionSet",
    "ArchiveBlob",
    "Archiver",
    "Extractor",
    "DiffEngine",
    "DiffResult",
    "SyncAction",
    "SyncDecision",
    "Reconciler",
    "ReconcileResult",
]
