"""Error kinds raised while soliciting user input."""

from __future__ import annotations


class PromptError(Exception):
    """Base class for every failure surfaced by the prompt stack."""

    def with_context(self, context: str) -> "PromptError":
        """Return an error of the same kind whose message is prefixed with `context`.

        The original error is chained as `__cause__` when the result is raised
        with `raise ... from`.
        """
        return type(self)(f"{context}: {self}")


class PromptConflictError(PromptError):
    """A prompt is already active, or its answer was already submitted."""


class NoActivePromptError(PromptConflictError):
    """An answer arrived while no prompt was waiting for one."""


class DeadlineExceededError(PromptError):
    """The caller's deadline expired before or during the call."""


class PromptTimedOutError(PromptError):
    """The effective timeout elapsed without an answer."""


class PromptCancelledError(PromptError):
    """The solicitation was cancelled mid-flight."""


class BackendUnavailableError(PromptError):
    """The remote broker could not be reached."""


class MalformedResponseError(PromptError):
    """The remote broker returned a payload that could not be decoded."""


class RemotePromptError(PromptError):
    """The remote broker reported an error not covered by a more specific kind."""


class UserCancelledError(PromptError):
    """The human explicitly dismissed the dialog."""


class DialogError(PromptError):
    """The local dialog could not be displayed."""


class DependencyError(PromptError):
    """A dialog backend is missing something it needs to run."""
