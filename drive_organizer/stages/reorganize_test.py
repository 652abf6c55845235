import pytest

from drive_organizer.classifier.gemini import GeminiClassifier, UsageTracker
from drive_organizer.data_models.decision import RunStatus
from drive_organizer.data_models.drive import ROOT_ID
from drive_organizer.factories import FakeGeminiModel, http_error, suggestion_payload
from drive_organizer.settings import OrganizerSettings
from drive_organizer.stages.decision import InteractiveDecider
from drive_organizer.stages.reorganize import Reorganizer


class ScriptedPrompt:
    def __init__(self, *answers):
        self.answers = list(answers)

    def __call__(self, text, default=""):
        return self.answers.pop(0)


@pytest.fixture
def build(walker, folders, mover, cache, token, echoed):
    """Return a factory wiring a Reorganizer around the in-memory fakes."""

    def _build(model, answers, usage=None, **settings):
        settings.setdefault("batch_size", 20)
        organizer = Reorganizer(
            OrganizerSettings(**settings),
            walker,
            folders,
            mover,
            GeminiClassifier(model, usage),
            InteractiveDecider(ScriptedPrompt(*answers), echo=echoed.append, token=token),
            cache=cache,
            token=token,
            echo=echoed.append,
            show_progress=False,
        )
        return organizer

    return _build


def files_in(store, path):
    folder = None
    parent = ROOT_ID
    for part in path.split("/"):
        [folder] = store.folders_named(part, parent)
        parent = folder.id
    return sorted(item.name for item in store.children(folder.id))


class TestResume:
    def test_organizes_backup_contents_without_touching_root(self, store, build):
        backup = store.add_folder("backup")
        store.add_file("stays.txt")
        for name in ("a.pdf", "b.jpg", "c.txt"):
            store.add_file(name, backup.id)
        model = FakeGeminiModel(
            [
                suggestion_payload("a.pdf", "Finance"),
                suggestion_payload("b.jpg", "Photos", name="beach.jpg"),
                suggestion_payload("c.txt", "Notes"),
            ]
        )

        summary = build(model, ["m", "m", "m"], resume=True).run()

        assert summary.status == RunStatus.COMPLETED
        assert (summary.organized, summary.skipped, summary.total) == (3, 0, 3)
        assert summary.backed_up == 0
        assert len(model.prompts) == 1
        assert files_in(store, "Photos") == ["beach.jpg"]
        assert files_in(store, "Finance") == ["a.pdf"]
        assert store.children(backup.id) == []
        assert "stays.txt" in {i.name for i in store.children(ROOT_ID)}

    def test_same_name_and_type_is_classified_once(self, store, build):
        backup = store.add_folder("backup")
        first = store.add_folder("one", backup.id)
        second = store.add_folder("two", backup.id)
        store.add_file("notes.txt", first.id, mime_type="text/plain")
        store.add_file("notes.txt", second.id, mime_type="text/plain")
        model = FakeGeminiModel([suggestion_payload("notes.txt", "Notes")])

        summary = build(model, ["m", "m"], resume=True, batch_size=1).run()

        assert summary.organized == 2
        assert len(model.prompts) == 1
        assert files_in(store, "Notes") == ["notes.txt", "notes.txt"]


class TestBatching:
    def test_injected_cache_is_the_one_used(self, store, build, cache):
        backup = store.add_folder("backup")
        store.add_file("a.txt", backup.id, mime_type="text/plain")
        model = FakeGeminiModel([suggestion_payload("a.txt", "Docs")])

        organizer = build(model, ["m"], resume=True)
        summary = organizer.run()

        assert organizer.cache is cache
        assert summary.organized == 1
        assert cache.get("a.txt|text/plain").suggested_folder == "Docs"

    def test_same_name_with_other_type_is_not_batched_together(self, store, build, cache):
        backup = store.add_folder("backup")
        store.add_file("notes", backup.id, mime_type="text/plain")
        store.add_file("notes", backup.id, mime_type="application/pdf")
        store.add_file("other.txt", backup.id, mime_type="text/plain")
        model = FakeGeminiModel(
            [suggestion_payload("notes", "Text"), suggestion_payload("other.txt", "Misc")],
            [suggestion_payload("notes", "Pdfs")],
        )

        summary = build(model, ["m", "m", "m"], resume=True).run()

        assert summary.organized == 3
        assert len(model.prompts) == 2
        assert "notes" in model.prompts[0] and "other.txt" in model.prompts[0]
        assert cache.get("notes|text/plain").suggested_folder == "Text"
        assert cache.get("notes|application/pdf").suggested_folder == "Pdfs"
        assert files_in(store, "Text") == ["notes"]
        assert files_in(store, "Pdfs") == ["notes"]
        assert files_in(store, "Misc") == ["other.txt"]


class TestFullRun:
    def test_backs_up_then_organizes(self, store, build, echoed):
        store.add_file("A.txt")
        store.add_file("B.pdf")
        model = FakeGeminiModel(
            [
                suggestion_payload("A.txt", "Notes"),
                suggestion_payload("B.pdf", "Work/Reports", name="report-2024.pdf"),
            ]
        )

        summary = build(model, ["m", "m"]).run()

        assert summary.backed_up == 2
        assert summary.organized == 2
        assert files_in(store, "Work/Reports") == ["report-2024.pdf"]
        assert files_in(store, "backup") == []
        assert "   ✓ Renamed to: report-2024.pdf" in echoed
        assert "   ✓ Organized: 2" in echoed

    def test_created_folders_become_hints(self, store, build):
        existing = store.add_folder("Work")
        backup = store.add_folder("backup")
        store.add_file("1.pdf", backup.id)
        store.add_file("2.pdf", backup.id)
        model = FakeGeminiModel(
            [suggestion_payload("1.pdf", "Work")], [suggestion_payload("2.pdf", "Work")]
        )

        organizer = build(model, ["c", "Finance/2024", "m"], resume=True, batch_size=1)
        organizer.run()

        assert "- Work" in model.prompts[0]
        assert "- Finance/2024" not in model.prompts[0]
        assert "- Finance/2024" in model.prompts[1]
        assert organizer.hints == ["Finance/2024", "Work", "backup"]
        assert files_in(store, "Finance/2024") == ["1.pdf"]
        assert [i.name for i in store.children(existing.id)] == ["2.pdf"]

    def test_nothing_to_do(self, store, build, echoed):
        summary = build(FakeGeminiModel(), []).run()

        assert summary.status == RunStatus.NOTHING_TO_DO
        assert "✓ No files to organize!" in echoed


class TestStopping:
    def test_quit_keeps_earlier_work(self, store, build, echoed):
        backup = store.add_folder("backup")
        for name in ("a.txt", "b.txt", "c.txt"):
            store.add_file(name, backup.id)
        model = FakeGeminiModel([suggestion_payload(n, "Docs") for n in ("a.txt", "b.txt", "c.txt")])

        summary = build(model, ["m", "q"], resume=True).run()

        assert summary.status == RunStatus.QUIT
        assert summary.organized == 1
        assert files_in(store, "Docs") == ["a.txt"]
        assert any("Organization stopped. 1 organized" in line for line in echoed)

    def test_cancellation_during_prompt(self, store, build, token, echoed):
        backup = store.add_folder("backup")
        store.add_file("a.txt", backup.id)
        store.add_file("b.txt", backup.id)
        model = FakeGeminiModel([suggestion_payload("a.txt", "Docs"), suggestion_payload("b.txt", "Docs")])
        organizer = build(model, [], resume=True)
        prompts = []

        def prompt(text, default=""):
            prompts.append(text)
            if len(prompts) == 2:
                token.cancel()
            return "m"

        organizer.decider.prompt = prompt

        summary = organizer.run()

        assert summary.status == RunStatus.CANCELLED
        assert summary.organized == 1
        assert any("Operation cancelled. 1/2 files organized." in line for line in echoed)
        assert files_in(store, "Docs") == ["a.txt"]

    def test_budget_exhaustion_ends_the_run(self, store, build, echoed):
        backup = store.add_folder("backup")
        store.add_file("a.txt", backup.id)
        store.add_file("b.txt", backup.id)
        usage = UsageTracker(input_price_per_million=1.0, output_price_per_million=0.0, max_cost=0.5)
        model = FakeGeminiModel(
            [suggestion_payload("a.txt", "Docs")], prompt_tokens=600_000, output_tokens=0
        )

        summary = build(model, ["m"], usage=usage, resume=True, batch_size=1, max_cost=0.5).run()

        assert summary.status == RunStatus.BUDGET_EXCEEDED
        assert summary.organized == 1
        assert any("AI budget of $0.50 reached" in line for line in echoed)


class TestFailures:
    def test_classification_failure_skips_the_file(self, store, build, echoed):
        backup = store.add_folder("backup")
        store.add_file("a.txt", backup.id)
        store.add_file("b.txt", backup.id)
        model = FakeGeminiModel(RuntimeError("quota"), [suggestion_payload("b.txt", "Docs")])

        summary = build(model, ["m"], resume=True, batch_size=1).run()

        assert (summary.organized, summary.skipped) == (1, 1)
        assert files_in(store, "Docs") == ["b.txt"]
        assert "   Skipping file...\n" in echoed

    def test_failed_batch_falls_back_to_single_calls(self, store, build):
        backup = store.add_folder("backup")
        store.add_file("a.txt", backup.id)
        store.add_file("b.txt", backup.id)
        model = FakeGeminiModel(
            "not json",
            [suggestion_payload("a.txt", "Docs")],
            [suggestion_payload("b.txt", "Docs")],
        )

        summary = build(model, ["m", "m"], resume=True).run()

        assert summary.organized == 2
        assert len(model.prompts) == 3

    def test_move_failure_counts_as_skip(self, store, build, echoed):
        backup = store.add_folder("backup")
        store.add_file("a.txt", backup.id)
        store.add_file("b.txt", backup.id)
        model = FakeGeminiModel([suggestion_payload("a.txt", "Docs"), suggestion_payload("b.txt", "Docs")])
        store.fail("update_item", http_error(403))

        summary = build(model, ["m", "m"], resume=True).run()

        assert (summary.organized, summary.skipped) == (1, 1)
        assert files_in(store, "Docs") == ["b.txt"]
        assert any(line.startswith("   ✗ Could not move") for line in echoed)

    def test_pass_and_invalid_are_skips(self, store, build):
        backup = store.add_folder("backup")
        store.add_file("a.txt", backup.id)
        store.add_file("b.txt", backup.id)
        model = FakeGeminiModel([suggestion_payload("a.txt", "Docs"), suggestion_payload("b.txt", "Docs")])

        summary = build(model, ["p", "zz"], resume=True).run()

        assert summary.status == RunStatus.COMPLETED
        assert (summary.organized, summary.skipped) == (0, 2)


def test_description_reclassifies_and_refreshes_cache(store, build, cache):
    backup = store.add_folder("backup")
    store.add_file("scan.pdf", backup.id, mime_type="application/pdf")
    model = FakeGeminiModel(
        [suggestion_payload("scan.pdf", "Other")],
        [suggestion_payload("scan.pdf", "Finance/Invoices")],
    )

    summary = build(model, ["d", "electricity invoice", "m"], resume=True).run()

    assert summary.organized == 1
    assert "electricity invoice" in model.prompts[1]
    assert cache.get("scan.pdf|application/pdf").suggested_folder == "Finance/Invoices"
    assert files_in(store, "Finance/Invoices") == ["scan.pdf"]


def test_dry_run_changes_nothing(store, build, echoed):
    store.add_file("A.txt")
    backup = store.add_folder("backup")
    store.add_file("old.pdf", backup.id)
    model = FakeGeminiModel(
        [suggestion_payload("A.txt", "Notes", name="a-notes.txt")],
    )

    summary = build(model, ["m"], dry_run=True).run()

    assert summary.organized == 1
    assert store.count_calls("update_item") == 0
    assert store.count_calls("create_folder") == 0
    assert "   [DRY-RUN] Would rename: A.txt → a-notes.txt" in echoed
    assert "   [DRY-RUN] Would move: A.txt → Notes" in echoed
