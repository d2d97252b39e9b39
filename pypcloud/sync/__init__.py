"""Sync engine for pypcloud - reconcile local directories with pCloud folders."""

from .comparator import (
    Classification,
    CompareMethod,
    UploadDecision,
    classify,
    should_upload_file,
)
from .engine import SyncConflict, SyncEngine, SyncStats
from .policy import TransferPolicy, with_retry
from .remote import RemoteTree
from .scanner import LocalEntry, LocalFile, LocalFolder, LocalTree

__all__ = [
    "SyncEngine",
    "SyncStats",
    "SyncConflict",
    "TransferPolicy",
    "with_retry",
    "Classification",
    "CompareMethod",
    "classify",
    "should_upload_file",
    "UploadDecision",
    "RemoteTree",
    "LocalEntry",
    "LocalFile",
    "LocalFolder",
    "LocalTree",
]
