import pytest

from drive_organizer.cancellation import CancellationToken
from drive_organizer.data_models.classify import Suggestion
from drive_organizer.data_models.decision import Move, Quit, Skip
from drive_organizer.errors import ClassificationError, OperationCancelledError
from drive_organizer.stages.decision import (
    AskAction,
    AskText,
    Finish,
    InteractiveDecider,
    Notice,
    Reclassify,
    Stage,
    describe_suggestion,
    start,
    step,
)

REPORT = Suggestion(
    filename="relatorio.pdf",
    suggested_folder="Trabalho/Relatórios",
    suggested_name="",
    reason="work report",
    confidence=0.9,
)
RENAMED = Suggestion(
    filename="IMG_1234.jpg",
    suggested_folder="Photos/2024",
    suggested_name="beach-2024.jpg",
    confidence=0.7,
)


def run(file_name, suggestion, *inputs):
    """Feed inputs through the pure state machine; return the last state and effect."""
    state, effect = start(file_name, suggestion)
    for line in inputs:
        state, effect = step(state, line)
    return state, effect


class TestStep:
    @pytest.mark.parametrize("action", ["m", "", "M", " m "])
    def test_move_accepts_suggestion(self, action):
        state, effect = run("relatorio.pdf", REPORT, action)

        assert state.stage == Stage.DONE
        assert effect == Finish(Move("Trabalho/Relatórios", "relatorio.pdf"))

    def test_move_uses_suggested_name(self):
        _, effect = run("IMG_1234.jpg", RENAMED, "m")

        assert effect.outcome == Move("Photos/2024", "beach-2024.jpg")

    def test_create_folder(self):
        state, effect = run("relatorio.pdf", REPORT, "c")
        assert state.stage == Stage.CREATING_FOLDER
        assert isinstance(effect, AskText)

        _, effect = step(state, "Financeiro/2024")

        assert effect.outcome == Move("Financeiro/2024", "relatorio.pdf")

    def test_create_folder_with_empty_name_skips(self):
        _, effect = run("relatorio.pdf", REPORT, "c", "")

        assert effect.outcome == Skip("empty folder name")

    def test_rename_folder(self):
        state, effect = run("relatorio.pdf", REPORT, "r")
        assert effect == AskText("   New folder name", default="Trabalho/Relatórios")

        _, effect = step(state, "Work")

        assert effect.outcome == Move("Work", "relatorio.pdf")

    def test_rename_folder_keeps_default_on_empty_input(self):
        _, effect = run("relatorio.pdf", REPORT, "r", "")

        assert effect.outcome == Move("Trabalho/Relatórios", "relatorio.pdf")

    def test_rename_file(self):
        state, effect = run("IMG_1234.jpg", RENAMED, "n")
        assert effect.default == "beach-2024.jpg"

        _, effect = step(state, "sunset.jpg")

        assert effect.outcome == Move("Photos/2024", "sunset.jpg")

    def test_rename_file_keeps_default_on_empty_input(self):
        _, effect = run("IMG_1234.jpg", RENAMED, "n", "  ")

        assert effect.outcome == Move("Photos/2024", "beach-2024.jpg")

    def test_describe_requests_reclassification(self):
        state, effect = run("relatorio.pdf", REPORT, "d", "monthly sales report")

        assert state.stage == Stage.PRESENTING
        assert effect == Reclassify("monthly sales report")

    def test_empty_description_returns_to_presenting(self):
        state, effect = run("relatorio.pdf", REPORT, "d", "")

        assert state.stage == Stage.PRESENTING
        assert isinstance(effect, Notice)

    def test_pass(self):
        _, effect = run("relatorio.pdf", REPORT, "p")

        assert effect.outcome == Skip("skipped")

    def test_quit(self):
        _, effect = run("relatorio.pdf", REPORT, "q")

        assert effect.outcome == Quit()

    def test_unknown_action_skips_with_warning(self):
        _, effect = run("relatorio.pdf", REPORT, "x")

        assert effect.outcome == Skip("invalid option")
        assert "Invalid option 'x'" in effect.message

    def test_finished_decision_rejects_input(self):
        state, _ = run("relatorio.pdf", REPORT, "m")

        with pytest.raises(ValueError):
            step(state, "m")

    def test_start_asks_for_action(self):
        state, effect = start("relatorio.pdf", REPORT)

        assert state.stage == Stage.PRESENTING
        assert effect == AskAction()


def test_describe_suggestion():
    lines = describe_suggestion("IMG_1234.jpg", RENAMED)

    assert "      Folder: Photos/2024" in lines
    assert "      Name: IMG_1234.jpg → beach-2024.jpg" in lines
    assert "      Confidence: 70%" in lines


def test_describe_suggestion_without_rename():
    lines = describe_suggestion("relatorio.pdf", REPORT)

    assert not any(line.startswith("      Name:") for line in lines)


class ScriptedPrompt:
    def __init__(self, *answers):
        self.answers = list(answers)
        self.asked: list[tuple[str, str]] = []

    def __call__(self, text, default=""):
        self.asked.append((text, default))
        return self.answers.pop(0)


class TestInteractiveDecider:
    def test_move(self, echoed):
        decider = InteractiveDecider(ScriptedPrompt("m"), echo=echoed.append)

        outcome = decider.decide("relatorio.pdf", REPORT, reclassify=pytest.fail)

        assert outcome == Move("Trabalho/Relatórios", "relatorio.pdf")

    def test_describe_then_accept_new_suggestion(self, echoed):
        new = Suggestion(filename="relatorio.pdf", suggested_folder="Sales", confidence=0.95)
        descriptions = []

        def reclassify(text):
            descriptions.append(text)
            return new

        prompt = ScriptedPrompt("d", "monthly sales report", "m")
        decider = InteractiveDecider(prompt, echo=echoed.append)

        outcome = decider.decide("relatorio.pdf", REPORT, reclassify)

        assert descriptions == ["monthly sales report"]
        assert outcome == Move("Sales", "relatorio.pdf")
        assert "\n   🤖 New suggestion:" in echoed

    def test_failed_reclassification_keeps_original(self, echoed):
        def reclassify(_text):
            raise ClassificationError("AI request failed: quota")

        prompt = ScriptedPrompt("d", "something", "m")
        decider = InteractiveDecider(prompt, echo=echoed.append)

        outcome = decider.decide("relatorio.pdf", REPORT, reclassify)

        assert outcome == Move("Trabalho/Relatórios", "relatorio.pdf")
        assert "   Keeping the original suggestion." in echoed

    def test_empty_description_asks_again(self, echoed):
        prompt = ScriptedPrompt("d", "", "p")
        decider = InteractiveDecider(prompt, echo=echoed.append)

        outcome = decider.decide("relatorio.pdf", REPORT, reclassify=pytest.fail)

        assert outcome == Skip("skipped")
        assert len(prompt.asked) == 3

    def test_rename_prompt_offers_default(self, echoed):
        prompt = ScriptedPrompt("r", "")
        decider = InteractiveDecider(prompt, echo=echoed.append)

        decider.decide("relatorio.pdf", REPORT, reclassify=pytest.fail)

        assert prompt.asked[1] == ("   New folder name", "Trabalho/Relatórios")

    def test_cancelled_while_waiting_for_input(self, echoed):
        token = CancellationToken()

        def prompt(text, default=""):
            token.cancel()
            return "m"

        decider = InteractiveDecider(prompt, echo=echoed.append, token=token)

        with pytest.raises(OperationCancelledError):
            decider.decide("relatorio.pdf", REPORT, reclassify=pytest.fail)
