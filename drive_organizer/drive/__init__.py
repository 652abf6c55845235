"""Google Drive access for the reorganization engine.

- client: one call per remote capability (list, find, create, update)
- retry: bounded exponential backoff around each call
- lister: paged and recursive folder listing
- folders: find-or-create of nested folder paths
- mover: move / rename and best-effort batch moves
"""

from drive_organizer.drive.client import DriveStore, RemoteStore
from drive_organizer.drive.folders import FolderResolver
from drive_organizer.drive.lister import TreeWalker
from drive_organizer.drive.mover import Mover
from drive_organizer.drive.retry import RetryExecutor, RetryPolicy

__all__ = [
    "DriveStore",
    "FolderResolver",
    "Mover",
    "RemoteStore",
    "RetryExecutor",
    "RetryPolicy",
    "TreeWalker",
]
