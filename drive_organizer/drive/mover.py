import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from drive_organizer.data_models.drive import ROOT_ID, RemoteItem
from drive_organizer.drive.client import RemoteStore
from drive_organizer.drive.retry import RetryExecutor
from drive_organizer.errors import OperationCancelledError, RemoteOperationError

logger = logging.getLogger(__name__)


@dataclass
class MoveReport:
    """Accumulated result of a best-effort batch move."""

    moved: list[RemoteItem] = field(default_factory=list)
    failures: list[tuple[RemoteItem, RemoteOperationError]] = field(default_factory=list)

    @property
    def moved_count(self) -> int:
        return len(self.moved)

    def add_success(self, item: RemoteItem) -> "MoveReport":
        self.moved.append(item)
        return self

    def add_failure(self, item: RemoteItem, error: RemoteOperationError) -> "MoveReport":
        self.failures.append((item, error))
        return self


class Mover:
    def __init__(self, store: RemoteStore, executor: RetryExecutor):
        self.store = store
        self.executor = executor

    def move(self, item_id: str, new_parent_id: str, old_parent_id: str) -> RemoteItem:
        moved = self.executor.execute(
            lambda: self.store.update_item(
                item_id, add_parent=new_parent_id, remove_parent=old_parent_id
            ),
            item_id,
            "move file",
        )
        logger.debug(f"Moved {item_id} to {new_parent_id}")
        return moved

    def rename(self, item_id: str, new_name: str) -> RemoteItem:
        renamed = self.executor.execute(
            lambda: self.store.update_item(item_id, name=new_name),
            item_id,
            "rename file",
        )
        logger.debug(f"Renamed {item_id} to '{new_name}'")
        return renamed

    def move_and_rename(
        self, item_id: str, new_name: str, new_parent_id: str, old_parent_id: str
    ) -> RemoteItem:
        """Rename and re-parent in a single update call."""
        updated = self.executor.execute(
            lambda: self.store.update_item(
                item_id,
                name=new_name,
                add_parent=new_parent_id,
                remove_parent=old_parent_id,
            ),
            item_id,
            "move and rename file",
        )
        logger.debug(f"Moved {item_id} to {new_parent_id} as '{new_name}'")
        return updated

    def move_all(
        self,
        items: Iterable[RemoteItem],
        dest_id: str,
        on_progress: Callable[[RemoteItem], None] | None = None,
    ) -> MoveReport:
        """Move every item into ``dest_id``; one failure does not stop the batch.

        Moved items are reported as fresh snapshots whose parents reflect the
        move. Cancellation stops the batch and propagates.
        """
        report = MoveReport()
        for item in items:
            self.executor.token.raise_if_cancelled()
            old_parent = item.first_parent or ROOT_ID
            try:
                self.move(item.id, dest_id, old_parent)
            except OperationCancelledError:
                raise
            except RemoteOperationError as e:
                logger.error(f"Failed to move '{item.name}': {e}")
                report.add_failure(item, e)
            else:
                report.add_success(item.model_copy(update={"parents": [dest_id]}))
            if on_progress is not None:
                on_progress(item)
        return report
