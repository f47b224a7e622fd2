"""The capability every dialog backend provides: solicit text with cancellation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class DialogProvider(ABC):
    """Show an input dialog to a human and return what they typed.

    `deadline` is an absolute `time.monotonic()` value; None means the caller
    has no deadline. Cancelling the awaiting task cancels the solicitation.
    """

    #: Default wait, in seconds, when neither caller nor configuration sets one.
    default_timeout: float = 5 * 60.0

    @abstractmethod
    async def show_input_dialog(self, prompt: str, title: str, *, deadline: Optional[float] = None) -> str:
        """Block until the human answers, the deadline passes, or the call is cancelled."""

    def check_dependencies(self) -> None:
        """Raise DependencyError if the backend cannot run on this machine."""
        return None


def build_dialog(backend: str, server_url: Optional[str] = None) -> DialogProvider:
    """Construct the dialog backend selected by configuration.

    Args:
        backend: "local" for a native desktop dialog, "remote" for a broker over HTTP.
        server_url: Broker base URL, required for the remote backend.

    Raises:
        ValueError: If the backend name is unknown or the URL is missing.
    """
    name = (backend or "local").strip().lower()
    if name == "local":
        from services.dialog.zenity_dialog import ZenityDialog

        return ZenityDialog()
    if name == "remote":
        if not server_url:
            raise ValueError("A server URL is required for the remote dialog backend.")
        from services.dialog.remote_dialog import RemoteDialog

        return RemoteDialog(server_url)
    raise ValueError(f"Unknown dialog backend '{backend}'. Expected 'local' or 'remote'.")
