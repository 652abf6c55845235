from pydantic import BaseModel, ConfigDict, field_validator

from drive_organizer.data_models.drive import RemoteItem


class FileMetadata(BaseModel):
    """What the classifier is told about a file."""

    name: str
    mime_type: str
    size: int = 0
    created_time: str = ""
    modified_time: str = ""

    @staticmethod
    def from_item(item: RemoteItem) -> "FileMetadata":
        # Folder sizes are meaningless for classification
        return FileMetadata(
            name=item.name,
            mime_type=item.mime_type,
            size=0 if item.is_folder else item.size,
            created_time=item.created_time,
            modified_time=item.modified_time,
        )


class Suggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str = ""
    suggested_folder: str = ""
    suggested_name: str = ""
    reason: str = ""
    confidence: float = 0.0
    needs_content: bool = False

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value):
        if value is None:
            return 0.0
        return min(max(float(value), 0.0), 1.0)

    def target_name(self, original_name: str) -> str:
        """The name a file ends up with when this suggestion is accepted."""
        if self.suggested_name and self.suggested_name != original_name:
            return self.suggested_name
        return original_name

    def renames(self, original_name: str) -> bool:
        return self.target_name(original_name) != original_name


def cache_key(name: str, mime_type: str) -> str:
    return name + "|" + mime_type
