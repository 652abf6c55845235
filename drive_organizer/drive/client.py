"""Google Drive v3 access.

:class:`DriveStore` is a thin adapter: one method per remote capability, no
retries and no pacing. Callers go through the retry executor, the tree walker
and the folder resolver, which only depend on the :class:`RemoteStore` protocol.
"""

import logging
from typing import Protocol

from drive_organizer.data_models.drive import FOLDER_MIME_TYPE, RemoteItem

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
ITEM_FIELDS = "id, name, mimeType, parents, createdTime, modifiedTime, size"


class RemoteStore(Protocol):
    def list_children(
        self,
        parent_id: str,
        page_token: str | None = None,
        folders_only: bool = False,
    ) -> tuple[list[RemoteItem], str | None]: ...

    def find_folder(self, name: str, parent_id: str) -> RemoteItem | None: ...

    def create_folder(self, name: str, parent_id: str) -> RemoteItem: ...

    def update_item(
        self,
        item_id: str,
        name: str | None = None,
        add_parent: str | None = None,
        remove_parent: str | None = None,
    ) -> RemoteItem: ...


def escape_query(value: str) -> str:
    """Escape a literal for use inside single quotes in a Drive query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def children_query(parent_id: str, folders_only: bool = False) -> str:
    query = f"'{escape_query(parent_id)}' in parents and trashed = false"
    if folders_only:
        query += f" and mimeType = '{FOLDER_MIME_TYPE}'"
    return query


class DriveStore:
    """RemoteStore backed by a ``googleapiclient`` Drive v3 service."""

    def __init__(self, service):
        self.service = service

    def list_children(
        self,
        parent_id: str,
        page_token: str | None = None,
        folders_only: bool = False,
    ) -> tuple[list[RemoteItem], str | None]:
        params = {
            "q": children_query(parent_id, folders_only),
            "pageSize": PAGE_SIZE,
            "fields": f"nextPageToken, files({ITEM_FIELDS})",
            "orderBy": "name",
        }
        if page_token:
            params["pageToken"] = page_token

        result = self.service.files().list(**params).execute()
        items = [RemoteItem.from_api(f) for f in result.get("files", [])]
        return items, result.get("nextPageToken") or None

    def find_folder(self, name: str, parent_id: str) -> RemoteItem | None:
        query = (
            f"name = '{escape_query(name)}' and {children_query(parent_id, folders_only=True)}"
        )
        result = (
            self.service.files()
            .list(q=query, pageSize=1, fields=f"files({ITEM_FIELDS})")
            .execute()
        )
        files = result.get("files", [])
        if not files:
            return None
        return RemoteItem.from_api(files[0])

    def create_folder(self, name: str, parent_id: str) -> RemoteItem:
        body = {"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]}
        created = self.service.files().create(body=body, fields=ITEM_FIELDS).execute()
        logger.info(f"Created folder '{name}' ({created['id']})")
        return RemoteItem.from_api(created)

    def update_item(
        self,
        item_id: str,
        name: str | None = None,
        add_parent: str | None = None,
        remove_parent: str | None = None,
    ) -> RemoteItem:
        params = {"fileId": item_id, "fields": ITEM_FIELDS}
        if name is not None:
            params["body"] = {"name": name}
        if add_parent:
            params["addParents"] = add_parent
        if remove_parent:
            params["removeParents"] = remove_parent

        updated = self.service.files().update(**params).execute()
        return RemoteItem.from_api(updated)
