from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
ROOT_ID = "root"


class NodeType(str, Enum):
    file = "file"
    folder = "folder"


class RemoteItem(BaseModel):
    """Read-only snapshot of one Drive node.

    Snapshots are never updated in place: a remote mutation is observed by
    fetching again (or by deriving a new snapshot with ``model_copy``).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    mime_type: str = ""
    parents: list[str] = Field(default_factory=list)
    created_time: str = ""
    modified_time: str = ""
    size: int = 0

    @property
    def type(self) -> NodeType:
        return NodeType.folder if self.mime_type == FOLDER_MIME_TYPE else NodeType.file

    @property
    def is_folder(self) -> bool:
        return self.type == NodeType.folder

    @property
    def first_parent(self) -> str | None:
        return self.parents[0] if self.parents else None

    @staticmethod
    def from_api(data: dict) -> "RemoteItem":
        """Build from a Drive v3 ``files`` resource."""
        return RemoteItem(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=data.get("mimeType", ""),
            parents=list(data.get("parents") or []),
            created_time=data.get("createdTime", ""),
            modified_time=data.get("modifiedTime", ""),
            # Drive reports size as a string and omits it for folders
            size=int(data.get("size") or 0),
        )
