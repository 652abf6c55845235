"""
Reorganization driver.

Sequence: stage the backup, seed the folder hints from the destination root,
then for each file: get-or-classify, decide interactively, execute the move.
One file is fully resolved before the next begins. Per-file failures are
counted as skips; quitting, cancellation and an exhausted AI budget end the run
with a summary of partial progress.
"""

import logging
from collections.abc import Callable

import typer

from drive_organizer.cancellation import CancellationToken
from drive_organizer.classifier.cache import ClassificationCache
from drive_organizer.classifier.gemini import GeminiClassifier
from drive_organizer.data_models.classify import FileMetadata, Suggestion, cache_key
from drive_organizer.data_models.decision import Move, Quit, RunStatus, RunSummary, Skip
from drive_organizer.data_models.drive import ROOT_ID, RemoteItem
from drive_organizer.drive.folders import FolderResolver
from drive_organizer.drive.lister import TreeWalker
from drive_organizer.drive.mover import Mover
from drive_organizer.errors import (
    BudgetExceededError,
    ClassificationError,
    OperationCancelledError,
    OrganizerError,
    RemoteOperationError,
)
from drive_organizer.settings import OrganizerSettings
from drive_organizer.stages.backup import BackupStager
from drive_organizer.stages.decision import LEGEND, InteractiveDecider
from drive_organizer.utils.formatting import format_size

logger = logging.getLogger(__name__)

SEPARATOR = "━" * 52


class Reorganizer:
    def __init__(
        self,
        settings: OrganizerSettings,
        walker: TreeWalker,
        folders: FolderResolver,
        mover: Mover,
        classifier: GeminiClassifier,
        decider: InteractiveDecider,
        cache: ClassificationCache | None = None,
        token: CancellationToken | None = None,
        echo: Callable[[str], None] = typer.echo,
        show_progress: bool = True,
    ):
        self.settings = settings
        self.walker = walker
        self.folders = folders
        self.mover = mover
        self.classifier = classifier
        self.decider = decider
        self.cache = cache if cache is not None else ClassificationCache()
        self.token = token if token is not None else walker.token
        self.echo = echo
        self.stager = BackupStager(
            walker,
            folders,
            mover,
            dry_run=settings.dry_run,
            echo=echo,
            show_progress=show_progress,
        )
        self.folder_hints: set[str] = set()
        self.backup_folder: RemoteItem | None = None

    # --- hints -------------------------------------------------------------

    def seed_folder_hints(self) -> set[str]:
        try:
            root_folders = self.walker.list_folders(ROOT_ID)
        except OperationCancelledError:
            raise
        except OrganizerError as e:
            logger.warning(f"Could not list existing folders: {e}")
            root_folders = []

        self.folder_hints = {folder.name for folder in root_folders}
        if self.folder_hints:
            self.echo(f"   Existing folders known to the AI: {len(self.folder_hints)}")
            logger.info(f"Loaded {len(self.folder_hints)} existing folders: {sorted(self.folder_hints)}")
        return self.folder_hints

    @property
    def hints(self) -> list[str]:
        return sorted(self.folder_hints)

    # --- classification ----------------------------------------------------

    def prefetch(self, files: list[RemoteItem], start: int) -> None:
        """Classify the next batch of uncached files in one AI call.

        Answers are matched back by file name, so a batch holds at most one
        file per name; same-named files of another type wait for a later call.
        """
        batch: list[RemoteItem] = []
        names: set[str] = set()
        for item in files[start:]:
            if item.name in names or cache_key(item.name, item.mime_type) in self.cache:
                continue
            batch.append(item)
            names.add(item.name)
            if len(batch) >= self.settings.batch_size:
                break

        if len(batch) < 2:
            return

        suggestions = self.classifier.classify_batch(
            [FileMetadata.from_item(item) for item in batch], self.hints
        )
        by_name = {item.name: item for item in batch}
        for suggestion in suggestions:
            item = by_name.get(suggestion.filename)
            if item is not None:
                self.cache.set(cache_key(item.name, item.mime_type), suggestion)
        logger.debug(f"Batch classified {len(suggestions)} of {len(batch)} files")

    def get_suggestion(self, files: list[RemoteItem], index: int) -> Suggestion:
        item = files[index]
        key = cache_key(item.name, item.mime_type)
        if key not in self.cache and self.settings.batch_size > 1:
            try:
                self.prefetch(files, index)
            except ClassificationError as e:
                # The single-file call below gets a second chance
                logger.warning(f"Batch classification failed: {e}")

        return self.cache.get_or_set(
            key,
            lambda: self.classifier.classify_single(FileMetadata.from_item(item), self.hints),
        )

    def reclassify(self, item: RemoteItem, description: str) -> Suggestion:
        suggestion = self.classifier.classify_with_description(
            FileMetadata.from_item(item), description, self.hints
        )
        self.cache.set(cache_key(item.name, item.mime_type), suggestion)
        return suggestion

    # --- execution ---------------------------------------------------------

    def apply(self, item: RemoteItem, outcome: Move) -> None:
        """Resolve the target folder and move (and rename) the file there."""
        renaming = outcome.name != item.name

        if self.settings.dry_run:
            if renaming:
                self.echo(f"   [DRY-RUN] Would rename: {item.name} → {outcome.name}")
            self.echo(f"   [DRY-RUN] Would move: {item.name} → {outcome.folder}")
            self.folder_hints.add(outcome.folder)
            return

        destination, _ = self.folders.find_or_create_path(outcome.folder)
        old_parent = item.first_parent or (self.backup_folder.id if self.backup_folder else ROOT_ID)

        if renaming:
            self.mover.move_and_rename(item.id, outcome.name, destination.id, old_parent)
            self.echo(f"   ✓ Renamed to: {outcome.name}")
        else:
            self.mover.move(item.id, destination.id, old_parent)
        self.echo(f"   ✓ Moved to: {outcome.folder}")

        if outcome.folder not in self.folder_hints:
            self.folder_hints.add(outcome.folder)
            logger.debug(f"Added folder '{outcome.folder}' to hints")

    # --- run ---------------------------------------------------------------

    def print_header(self, item: RemoteItem, position: int, total: int) -> None:
        self.echo(SEPARATOR)
        self.echo(f"📄 [{position}/{total}] {item.name}")
        self.echo(
            f"   Type: {item.mime_type} | Size: {format_size(item.size)} | Created: {item.created_time}"
        )

    def print_summary(self, summary: RunSummary) -> None:
        if summary.status == RunStatus.NOTHING_TO_DO:
            self.echo("✓ No files to organize!")
            return
        if summary.status == RunStatus.CANCELLED:
            self.echo(
                f"\n⚠ Operation cancelled. {summary.organized}/{summary.total} files organized."
            )
            return
        if summary.status == RunStatus.QUIT:
            self.echo(
                f"\n✓ Organization stopped. {summary.organized} organized, {summary.skipped} skipped."
            )
            return
        if summary.status == RunStatus.BUDGET_EXCEEDED:
            self.echo(f"\n⚠ AI budget of ${self.settings.max_cost:.2f} reached, stopping.")

        self.echo(SEPARATOR)
        self.echo("\n🎉 Organization finished!")
        self.echo(f"   ✓ Organized: {summary.organized}")
        self.echo(f"   ⏭️  Skipped: {summary.skipped}")
        self.echo(f"   📁 Total: {summary.total}")

    def run(self) -> RunSummary:
        summary = RunSummary()
        try:
            self._run(summary)
        except OperationCancelledError:
            summary.status = RunStatus.CANCELLED
        except BudgetExceededError as e:
            logger.warning(str(e))
            summary.status = RunStatus.BUDGET_EXCEEDED
        self.print_summary(summary)
        return summary

    def _run(self, summary: RunSummary) -> None:
        if self.settings.dry_run:
            self.echo("🔍 DRY-RUN MODE: no file will be moved\n")

        self.echo("📋 Listing files at the Drive root...")
        staged = self.stager.stage(self.settings.backup_folder, resume=self.settings.resume)
        self.backup_folder = staged.backup_folder
        summary.backed_up = staged.moved_count
        summary.backup_failures = len(staged.report.failures)

        files = [item for item in staged.items if not item.is_folder]
        summary.total = len(files)
        if not files:
            summary.status = RunStatus.NOTHING_TO_DO
            return

        self.echo("\n🤖 Preparing the AI classifier...")
        self.seed_folder_hints()

        self.echo(f"\n🗂️  Organizing {len(files)} files...")
        for line in LEGEND:
            self.echo(line)
        self.echo("")

        for index, item in enumerate(files):
            self.token.raise_if_cancelled()
            self.print_header(item, index + 1, len(files))

            try:
                suggestion = self.get_suggestion(files, index)
            except ClassificationError as e:
                logger.error(f"Classification failed for '{item.name}': {e}")
                self.echo(f"   ✗ Could not classify: {e}")
                self.echo("   Skipping file...\n")
                summary.skipped += 1
                continue

            self.decider.show(item.name, suggestion)
            outcome = self.decider.decide(
                item.name, suggestion, lambda text, item=item: self.reclassify(item, text)
            )

            if isinstance(outcome, Quit):
                summary.status = RunStatus.QUIT
                return
            if isinstance(outcome, Skip):
                summary.skipped += 1
                continue

            try:
                self.apply(item, outcome)
            except OperationCancelledError:
                raise
            except (RemoteOperationError, ValueError) as e:
                logger.error(f"Failed to move '{item.name}' to '{outcome.folder}': {e}")
                self.echo(f"   ✗ Could not move: {e}")
                summary.skipped += 1
                continue

            summary.organized += 1
            self.echo("")
