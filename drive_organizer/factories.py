"""Test factories and in-memory fakes for Drive and Gemini.

Only imported by tests.
"""

import itertools
import json
from collections import defaultdict
from types import SimpleNamespace

import factory
import httplib2
from googleapiclient.errors import HttpError

from drive_organizer.data_models.classify import Suggestion
from drive_organizer.data_models.drive import FOLDER_MIME_TYPE, ROOT_ID, RemoteItem


class RemoteItemFactory(factory.Factory):
    class Meta:
        model = RemoteItem

    id = factory.Sequence(lambda n: f"file-{n}")
    name = factory.Faker("file_name")
    mime_type = factory.Faker("mime_type", category="application")
    parents = factory.LazyFunction(lambda: [ROOT_ID])
    created_time = factory.Faker("iso8601")
    modified_time = factory.Faker("iso8601")
    size = factory.Faker("pyint", min_value=1, max_value=50_000_000)


class FolderFactory(RemoteItemFactory):
    id = factory.Sequence(lambda n: f"folder-{n}")
    name = factory.Faker("word")
    mime_type = FOLDER_MIME_TYPE
    size = 0


class SuggestionFactory(factory.Factory):
    class Meta:
        model = Suggestion

    filename = factory.Faker("file_name")
    suggested_folder = factory.Faker("word")
    suggested_name = ""
    reason = factory.Faker("sentence")
    confidence = factory.Faker("pyfloat", min_value=0, max_value=1)
    needs_content = False


def http_error(status: int, message: str = "error") -> HttpError:
    return HttpError(httplib2.Response({"status": status}), message.encode())


class FakeDriveStore:
    """In-memory RemoteStore with scripted failures.

    ``fail(method, *errors)`` queues exceptions raised by the next calls of
    ``method``, one per call.
    """

    def __init__(self, page_size: int = 100):
        self.page_size = page_size
        self.items: dict[str, RemoteItem] = {}
        self.trashed: set[str] = set()
        self.calls: list[tuple[str, tuple]] = []
        self._failures: dict[str, list[BaseException]] = defaultdict(list)
        self._ids = itertools.count(1)

    # --- setup -------------------------------------------------------------

    def add(self, item: RemoteItem) -> RemoteItem:
        self.items[item.id] = item
        return item

    def add_folder(self, name: str, parent_id: str = ROOT_ID, **kwargs) -> RemoteItem:
        return self.add(FolderFactory(name=name, parents=[parent_id], **kwargs))

    def add_file(self, name: str, parent_id: str = ROOT_ID, **kwargs) -> RemoteItem:
        return self.add(RemoteItemFactory(name=name, parents=[parent_id], **kwargs))

    def fail(self, method: str, *errors: BaseException) -> None:
        self._failures[method].extend(errors)

    # --- inspection --------------------------------------------------------

    def children(self, parent_id: str) -> list[RemoteItem]:
        return sorted(
            (
                item
                for item in self.items.values()
                if parent_id in item.parents and item.id not in self.trashed
            ),
            key=lambda item: item.name,
        )

    def folders_named(self, name: str, parent_id: str = ROOT_ID) -> list[RemoteItem]:
        return [i for i in self.children(parent_id) if i.is_folder and i.name == name]

    def count_calls(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    # --- RemoteStore -------------------------------------------------------

    def _enter(self, method: str, *args) -> None:
        self.calls.append((method, args))
        queued = self._failures.get(method)
        if queued:
            raise queued.pop(0)

    def list_children(self, parent_id, page_token=None, folders_only=False):
        self._enter("list_children", parent_id, page_token, folders_only)
        children = self.children(parent_id)
        if folders_only:
            children = [c for c in children if c.is_folder]
        offset = int(page_token or 0)
        page = children[offset : offset + self.page_size]
        next_offset = offset + self.page_size
        return page, (str(next_offset) if next_offset < len(children) else None)

    def find_folder(self, name, parent_id):
        self._enter("find_folder", name, parent_id)
        matches = self.folders_named(name, parent_id)
        return matches[0] if matches else None

    def create_folder(self, name, parent_id):
        self._enter("create_folder", name, parent_id)
        folder = RemoteItem(
            id=f"created-{next(self._ids)}",
            name=name,
            mime_type=FOLDER_MIME_TYPE,
            parents=[parent_id],
        )
        return self.add(folder)

    def update_item(self, item_id, name=None, add_parent=None, remove_parent=None):
        self._enter("update_item", item_id, name, add_parent, remove_parent)
        if item_id not in self.items:
            raise http_error(404, f"File not found: {item_id}")

        item = self.items[item_id]
        parents = [p for p in item.parents if p != remove_parent]
        if add_parent and add_parent not in parents:
            parents.append(add_parent)
        updated = item.model_copy(
            update={"parents": parents, "name": name if name is not None else item.name}
        )
        self.items[item_id] = updated
        return updated


class FakeGeminiModel:
    """Stands in for ``genai.GenerativeModel``; answers from a queue.

    Each queued answer is a JSON-serializable value, a raw string, or an
    exception to raise.
    """

    def __init__(self, *answers, prompt_tokens: int = 1000, output_tokens: int = 200):
        self.answers = list(answers)
        self.prompts: list[str] = []
        self.prompt_tokens = prompt_tokens
        self.output_tokens = output_tokens

    def queue(self, *answers) -> None:
        self.answers.extend(answers)

    def generate_content(self, prompt: str):
        self.prompts.append(prompt)
        if not self.answers:
            raise AssertionError("FakeGeminiModel has no queued answer")
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        text = answer if isinstance(answer, str) else json.dumps(answer)
        return SimpleNamespace(
            text=text,
            usage_metadata=SimpleNamespace(
                prompt_token_count=self.prompt_tokens,
                candidates_token_count=self.output_tokens,
            ),
        )


def suggestion_payload(filename: str, folder: str, name: str = "", confidence: float = 0.9, **extra) -> dict:
    return {
        "filename": filename,
        "suggested_folder": folder,
        "suggested_name": name,
        "reason": extra.pop("reason", "matches the file name"),
        "confidence": confidence,
        "needs_content": extra.pop("needs_content", False),
    }
