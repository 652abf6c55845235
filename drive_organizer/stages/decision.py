"""
Per-file interactive decision.

The decision is a small finite state machine driven by one line of user input
at a time. :func:`step` is pure: it maps ``(state, input)`` to
``(new_state, effect)`` and never touches the terminal, the AI or Drive. The
:class:`InteractiveDecider` executes the effects: it prompts, calls the
classifier for re-descriptions and returns the final outcome.

Actions at the ``PRESENTING`` stage:

    m / empty  move to the suggested folder (with the suggested name)
    d          describe the file; the AI re-classifies and the file is shown again
    r          replace the target folder
    n          replace the target file name
    c          type a brand-new folder (empty input skips the file)
    p          skip the file
    q          quit the whole run

Anything else skips the file with a warning.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

import typer

from drive_organizer.cancellation import CancellationToken
from drive_organizer.data_models.classify import Suggestion
from drive_organizer.data_models.decision import DecisionOutcome, Move, Quit, Skip
from drive_organizer.errors import ClassificationError

logger = logging.getLogger(__name__)

ACTION_PROMPT = (
    "\n   Action? (m)ove / (d)escribe / (r)ename folder / (n)ame file"
    " / (c)reate new / (p)ass / (q)uit"
)

LEGEND = [
    "   For each file you can:",
    "   (m) Move to the suggested folder (renaming if suggested)",
    "   (d) Describe the file for the AI to re-analyze",
    "   (r) Rename the target folder",
    "   (n) Change the file name",
    "   (c) Create a new custom folder",
    "   (p) Pass (skip) the file",
    "   (q) Quit",
]


class Stage(str, Enum):
    PRESENTING = "presenting"
    DESCRIBING = "describing"
    RENAMING_FOLDER = "renaming_folder"
    RENAMING_FILE = "renaming_file"
    CREATING_FOLDER = "creating_folder"
    DONE = "done"


@dataclass(frozen=True)
class DecisionState:
    file_name: str
    suggestion: Suggestion
    stage: Stage = Stage.PRESENTING
    outcome: DecisionOutcome | None = None

    @property
    def target_name(self) -> str:
        return self.suggestion.target_name(self.file_name)


# Effects requested by a transition


@dataclass(frozen=True)
class AskAction:
    pass


@dataclass(frozen=True)
class AskText:
    prompt: str
    default: str = ""


@dataclass(frozen=True)
class Reclassify:
    description: str


@dataclass(frozen=True)
class Notice:
    message: str
    warning: bool = False


@dataclass(frozen=True)
class Finish:
    outcome: DecisionOutcome
    message: str = ""


Effect = AskAction | AskText | Reclassify | Notice | Finish


def start(file_name: str, suggestion: Suggestion) -> tuple[DecisionState, Effect]:
    return DecisionState(file_name=file_name, suggestion=suggestion), AskAction()


def _finish(state: DecisionState, outcome: DecisionOutcome, message: str = ""):
    return replace(state, stage=Stage.DONE, outcome=outcome), Finish(outcome, message)


def _present(state: DecisionState, action: str) -> tuple[DecisionState, Effect]:
    suggestion = state.suggestion
    action = action.strip().lower()

    if action in ("m", ""):
        return _finish(state, Move(suggestion.suggested_folder, state.target_name))
    if action == "d":
        return (
            replace(state, stage=Stage.DESCRIBING),
            AskText("   Describe the file (e.g. monthly sales report)"),
        )
    if action == "r":
        return (
            replace(state, stage=Stage.RENAMING_FOLDER),
            AskText("   New folder name", default=suggestion.suggested_folder),
        )
    if action == "n":
        return (
            replace(state, stage=Stage.RENAMING_FILE),
            AskText("   New file name", default=state.target_name),
        )
    if action == "c":
        return replace(state, stage=Stage.CREATING_FOLDER), AskText("   New folder name")
    if action == "p":
        return _finish(state, Skip("skipped"), "   ⏭️  Skipped")
    if action == "q":
        return _finish(state, Quit())

    return _finish(state, Skip("invalid option"), f"   ⚠ Invalid option '{action}', skipping...")


def step(state: DecisionState, user_input: str) -> tuple[DecisionState, Effect]:
    """Advance the decision by one line of input."""
    text = user_input.strip()

    if state.stage == Stage.PRESENTING:
        return _present(state, user_input)

    if state.stage == Stage.DESCRIBING:
        if not text:
            return (
                replace(state, stage=Stage.PRESENTING),
                Notice("   Empty description, keeping the current suggestion."),
            )
        return replace(state, stage=Stage.PRESENTING), Reclassify(text)

    if state.stage == Stage.RENAMING_FOLDER:
        folder = text or state.suggestion.suggested_folder
        return _finish(state, Move(folder, state.target_name))

    if state.stage == Stage.RENAMING_FILE:
        name = text or state.target_name
        return _finish(state, Move(state.suggestion.suggested_folder, name))

    if state.stage == Stage.CREATING_FOLDER:
        if not text:
            return _finish(state, Skip("empty folder name"), "   Empty name, skipping...")
        return _finish(state, Move(text, state.target_name))

    raise ValueError(f"Decision for '{state.file_name}' is already finished")


def with_suggestion(state: DecisionState, suggestion: Suggestion) -> DecisionState:
    """Replace the suggestion after a re-classification; the stage is unchanged."""
    return replace(state, suggestion=suggestion)


def describe_suggestion(file_name: str, suggestion: Suggestion, title: str = "AI suggestion") -> list[str]:
    lines = [f"\n   🤖 {title}:", f"      Folder: {suggestion.suggested_folder}"]
    if suggestion.renames(file_name):
        lines.append(f"      Name: {file_name} → {suggestion.suggested_name}")
    lines.append(f"      Reason: {suggestion.reason}")
    lines.append(f"      Confidence: {suggestion.confidence * 100:.0f}%")
    if suggestion.needs_content:
        lines.append("      ⚠ The AI suggests analyzing the content for a better classification")
    return lines


def _terminal_prompt(text: str, default: str = "") -> str:
    return typer.prompt(text, default=default, show_default=bool(default))


class InteractiveDecider:
    """Runs the decision state machine against a prompt function.

    ``reclassify`` receives the user's description and returns a new
    suggestion (it is also responsible for refreshing the cache).
    """

    def __init__(
        self,
        prompt: Callable[[str, str], str] = _terminal_prompt,
        echo: Callable[[str], None] = typer.echo,
        token: CancellationToken | None = None,
    ):
        self.prompt = prompt
        self.echo = echo
        self.token = token if token is not None else CancellationToken()

    def show(self, file_name: str, suggestion: Suggestion, title: str = "AI suggestion") -> None:
        for line in describe_suggestion(file_name, suggestion, title):
            self.echo(line)

    def _read(self, text: str, default: str = "") -> str:
        answer = self.prompt(text, default)
        # Ctrl-C cannot interrupt a blocking read; honour it once input arrives
        self.token.raise_if_cancelled()
        return answer

    def decide(
        self,
        file_name: str,
        suggestion: Suggestion,
        reclassify: Callable[[str], Suggestion],
    ) -> DecisionOutcome:
        state, effect = start(file_name, suggestion)

        while True:
            if isinstance(effect, Finish):
                if effect.message:
                    self.echo(effect.message)
                return effect.outcome

            if isinstance(effect, AskAction):
                state, effect = step(state, self._read(ACTION_PROMPT))
            elif isinstance(effect, AskText):
                state, effect = step(state, self._read(effect.prompt, effect.default))
            elif isinstance(effect, Notice):
                self.echo(effect.message)
                effect = AskAction()
            elif isinstance(effect, Reclassify):
                self.echo("   🤖 Re-analyzing with your description...")
                try:
                    new_suggestion = reclassify(effect.description)
                except ClassificationError as e:
                    logger.error(f"Re-classification of '{file_name}' failed: {e}")
                    self.echo(f"   ✗ Re-classification failed: {e}")
                    self.echo("   Keeping the original suggestion.")
                else:
                    state = with_suggestion(state, new_suggestion)
                    self.show(file_name, new_suggestion, "New suggestion")
                effect = AskAction()
