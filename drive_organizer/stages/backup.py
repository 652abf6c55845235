"""
Backup staging: the first half of a reorganization run.

Everything at the Drive root (except the backup container itself) is moved
into the backup folder; the second half then works through what landed there.
In resume mode, or when the root has nothing new, the backup folder's current
contents are the work queue instead.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import typer

from drive_organizer.data_models.drive import ROOT_ID, RemoteItem
from drive_organizer.drive.folders import FolderResolver, split_path
from drive_organizer.drive.lister import TreeWalker
from drive_organizer.drive.mover import MoveReport, Mover

logger = logging.getLogger(__name__)


@dataclass
class BackupResult:
    backup_folder: RemoteItem | None
    items: list[RemoteItem]
    report: MoveReport = field(default_factory=MoveReport)
    from_backup: bool = False

    @property
    def moved_count(self) -> int:
        return self.report.moved_count


def partition_root_items(items: list[RemoteItem], backup_root_name: str) -> list[RemoteItem]:
    """Root items to back up: all but the folder that holds the backup."""
    return [
        item
        for item in items
        if not (item.is_folder and item.name == backup_root_name)
    ]


class BackupStager:
    def __init__(
        self,
        walker: TreeWalker,
        folders: FolderResolver,
        mover: Mover,
        dry_run: bool = False,
        echo: Callable[[str], None] = typer.echo,
        show_progress: bool = True,
    ):
        self.walker = walker
        self.folders = folders
        self.mover = mover
        self.dry_run = dry_run
        self.echo = echo
        self.show_progress = show_progress

    def resolve_backup_folder(self, backup_path: str) -> RemoteItem | None:
        if self.dry_run:
            # Dry runs must not create anything, so only look the path up
            return self.folders.find_path(backup_path)
        folder, _ = self.folders.find_or_create_path(backup_path)
        return folder

    def list_backup(self, backup_folder: RemoteItem | None) -> list[RemoteItem]:
        if backup_folder is None:
            return []
        return self.walker.list_recursive(backup_folder.id)

    def stage(self, backup_path: str, resume: bool = False) -> BackupResult:
        root_items = self.walker.list_folder(ROOT_ID)
        files = sum(1 for item in root_items if not item.is_folder)
        self.echo(f"   Found {files} files and {len(root_items) - files} folders at the root")

        self.echo(f"📦 Resolving backup folder '{backup_path}'...")
        backup_folder = self.resolve_backup_folder(backup_path)
        segments = split_path(backup_path)
        to_back_up = partition_root_items(root_items, segments[0] if segments else "")

        if resume:
            self.echo("↩️  Resume mode: working from the backup folder, root items stay put.")
            return self._from_backup(backup_folder)

        if not to_back_up:
            self.echo("   Nothing new at the root. Checking the backup folder recursively...")
            return self._from_backup(backup_folder)

        self.echo(f"📦 Moving {len(to_back_up)} files and folders to backup...")
        if self.dry_run:
            for item in to_back_up:
                self.echo(f"   [DRY-RUN] Would move: {item.name} → {backup_path}")
            return BackupResult(backup_folder, to_back_up)

        report = self._move_with_progress(to_back_up, backup_folder)
        if report.failures:
            self.echo(f"   ⚠ {len(report.failures)} items could not be moved (see log)")
        logger.info(f"Backed up {report.moved_count} of {len(to_back_up)} root items")

        failed = [item for item, _ in report.failures]
        return BackupResult(backup_folder, report.moved + failed, report)

    def _from_backup(self, backup_folder: RemoteItem | None) -> BackupResult:
        items = self.list_backup(backup_folder)
        if items:
            self.echo(f"   Found {len(items)} files in the backup (including subfolders).")
        return BackupResult(backup_folder, items, from_backup=True)

    def _move_with_progress(self, items: list[RemoteItem], backup_folder: RemoteItem) -> MoveReport:
        if not self.show_progress:
            return self.mover.move_all(items, backup_folder.id)

        with typer.progressbar(length=len(items), label="   Backup", width=40) as bar:
            return self.mover.move_all(
                items, backup_folder.id, on_progress=lambda _: bar.update(1)
            )
