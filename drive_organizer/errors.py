"""Error taxonomy for the reorganization engine.

Per-file and per-subtree failures are caught by the stages that own them and
reported; only setup failures, budget exhaustion and cancellation travel up to
the CLI.
"""


class OrganizerError(Exception):
    """Base class for every error raised by drive_organizer."""


class RemoteOperationError(OrganizerError):
    """A remote call failed permanently or ran out of retry budget."""

    def __init__(
        self,
        description: str,
        target_id: str,
        cause: BaseException,
        retryable: bool = False,
    ):
        self.description = description
        self.target_id = target_id
        self.cause = cause
        self.retryable = retryable
        super().__init__(f"{description} '{target_id}' failed: {cause}")


class OperationCancelledError(OrganizerError):
    """The run's cancellation signal fired while waiting."""

    def __init__(self, message: str = "operation cancelled"):
        super().__init__(message)


class MaxDepthExceededError(OrganizerError):
    def __init__(self, folder_id: str, depth: int):
        self.folder_id = folder_id
        self.depth = depth
        super().__init__(
            f"maximum folder depth exceeded at depth {depth} (folder '{folder_id}')"
        )


class ClassificationError(OrganizerError):
    """The AI collaborator could not produce a suggestion."""


class ClassificationParseError(ClassificationError):
    """The AI answered, but not with a suggestion array or object."""

    def __init__(self, message: str, raw: str):
        self.raw = raw
        super().__init__(f"{message}\nResponse: {raw}")


class BudgetExceededError(OrganizerError):
    def __init__(self, spent: float, limit: float):
        self.spent = spent
        self.limit = limit
        super().__init__(
            f"estimated AI spend ${spent:.4f} reached the limit of ${limit:.2f}"
        )
