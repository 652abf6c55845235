import logging

from drive_organizer.cancellation import CancellationToken
from drive_organizer.data_models.drive import RemoteItem
from drive_organizer.drive.client import RemoteStore
from drive_organizer.drive.retry import RetryExecutor
from drive_organizer.errors import (
    MaxDepthExceededError,
    OperationCancelledError,
    OrganizerError,
)

logger = logging.getLogger(__name__)

MAX_DEPTH = 20
PAGE_DELAY = 0.1
FOLDER_DELAY = 0.2


class TreeWalker:
    """Lists Drive folders page by page, optionally recursively.

    Pacing between pages and between subfolders is a fixed delay, not an
    adaptive throttle. Both delays observe the cancellation token.
    """

    def __init__(
        self,
        store: RemoteStore,
        executor: RetryExecutor,
        page_delay: float = PAGE_DELAY,
        folder_delay: float = FOLDER_DELAY,
        max_depth: int = MAX_DEPTH,
    ):
        self.store = store
        self.executor = executor
        self.page_delay = page_delay
        self.folder_delay = folder_delay
        self.max_depth = max_depth

    @property
    def token(self) -> CancellationToken:
        return self.executor.token

    def list_folder(self, folder_id: str, folders_only: bool = False) -> list[RemoteItem]:
        """All non-trashed direct children of ``folder_id``, ordered by name."""
        items: list[RemoteItem] = []
        page_token: str | None = None

        while True:
            page, page_token = self.executor.execute(
                lambda: self.store.list_children(folder_id, page_token, folders_only),
                folder_id,
                "list folder",
            )
            items.extend(page)
            logger.debug(f"Listed {len(page)} items (total {len(items)}) in folder {folder_id}")

            if not page_token:
                break
            self.token.sleep(self.page_delay)

        logger.info(f"Found {len(items)} items in folder {folder_id}")
        return items

    def list_folders(self, folder_id: str) -> list[RemoteItem]:
        return self.list_folder(folder_id, folders_only=True)

    def list_recursive(self, folder_id: str, depth: int = 0) -> list[RemoteItem]:
        """Every file (not folder) below ``folder_id``, depth first.

        A subfolder whose listing fails, including one past the depth ceiling,
        is logged and left out; the rest of the walk continues. Failure to list
        ``folder_id`` itself propagates.
        """
        return self._walk(folder_id, depth, visited=set())

    def _walk(self, folder_id: str, depth: int, visited: set[str]) -> list[RemoteItem]:
        if depth > self.max_depth:
            logger.warning(f"Maximum recursion depth reached at {depth} (folder {folder_id})")
            raise MaxDepthExceededError(folder_id, depth)
        visited.add(folder_id)

        files: list[RemoteItem] = []
        for item in self.list_folder(folder_id):
            if not item.is_folder:
                files.append(item)
                continue

            if item.id in visited:
                # Drive lets a node have several parents
                logger.debug(f"Folder '{item.name}' already visited, skipping")
                continue

            logger.debug(f"Entering subfolder '{item.name}' at depth {depth}")
            self.token.sleep(self.folder_delay)
            try:
                files.extend(self._walk(item.id, depth + 1, visited))
            except OperationCancelledError:
                raise
            except OrganizerError as e:
                logger.error(f"Could not list folder '{item.name}', continuing: {e}")

        return files
