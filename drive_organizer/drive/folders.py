import logging

from drive_organizer.data_models.drive import ROOT_ID, RemoteItem
from drive_organizer.drive.client import RemoteStore
from drive_organizer.drive.retry import RetryExecutor

logger = logging.getLogger(__name__)


def split_path(path: str) -> list[str]:
    """Split a slash-delimited folder path, dropping blank segments."""
    return [part.strip() for part in path.split("/") if part.strip()]


class FolderResolver:
    """Find-or-create for single folders and nested folder paths.

    Lookups go by exact name under an exact parent, so resolving the same
    path twice yields the same folder. Two resolvers racing on the same
    missing folder can still both create it; the run is single-threaded.
    """

    def __init__(self, store: RemoteStore, executor: RetryExecutor):
        self.store = store
        self.executor = executor

    def find(self, name: str, parent_id: str) -> RemoteItem | None:
        return self.executor.execute(
            lambda: self.store.find_folder(name, parent_id), name, "find folder"
        )

    def create(self, name: str, parent_id: str) -> RemoteItem:
        return self.executor.execute(
            lambda: self.store.create_folder(name, parent_id), name, "create folder"
        )

    def find_or_create(self, name: str, parent_id: str) -> tuple[RemoteItem, bool]:
        """Return the folder and whether it had to be created."""
        existing = self.find(name, parent_id)
        if existing is not None:
            logger.debug(f"Folder '{name}' already exists ({existing.id})")
            return existing, False
        return self.create(name, parent_id), True

    def find_or_create_path(
        self, path: str, root_id: str = ROOT_ID
    ) -> tuple[RemoteItem, bool]:
        """Resolve every segment of ``path`` in order, creating missing ones.

        Returns the deepest folder and whether any segment was created.
        """
        parts = split_path(path)
        if not parts:
            raise ValueError(f"Empty folder path: {path!r}")

        parent_id = root_id
        folder: RemoteItem | None = None
        created_any = False
        for part in parts:
            folder, created = self.find_or_create(part, parent_id)
            created_any = created_any or created
            parent_id = folder.id

        return folder, created_any

    def find_path(self, path: str, root_id: str = ROOT_ID) -> RemoteItem | None:
        """Look a nested path up without creating anything."""
        folder: RemoteItem | None = None
        parent_id = root_id
        for part in split_path(path):
            folder = self.find(part, parent_id)
            if folder is None:
                return None
            parent_id = folder.id
        return folder
