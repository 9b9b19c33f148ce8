"""Mapping from daemon state to what the front end shows.

Pure functions so both the CLI and the status panel render the same text.
"""

from dataclasses import dataclass

from quarrybar.domain.state import DaemonState, StateKind


@dataclass(frozen=True)
class StatusView:
    """Display text for one daemon state.

    Attributes:
        kind: State being shown.
        badge: Short label for the header ("Running", or the error message).
        icon: Single-character status glyph.
        headline: Title of the main content area (empty when running).
        detail: Explanatory line under the headline.
        action: Command the front end offers ("start", "restart") or None.
    """

    kind: StateKind
    badge: str
    icon: str
    headline: str
    detail: str
    action: str | None = None


def render_status(state: DaemonState) -> StatusView:
    """Build the display text for a daemon state.

    Args:
        state: Published daemon state.

    Returns:
        StatusView for the header badge and content area.
    """
    if state.kind is StateKind.STOPPED:
        return StatusView(
            kind=state.kind,
            badge="Stopped",
            icon="○",
            headline="Backend Stopped",
            detail="The search backend is not running.",
            action="start",
        )
    if state.kind is StateKind.STARTING:
        return StatusView(
            kind=state.kind,
            badge="Starting…",
            icon="◌",
            headline="Starting Quarry…",
            detail="Launching the search backend.",
        )
    if state.kind is StateKind.RUNNING:
        return StatusView(
            kind=state.kind,
            badge="Running",
            icon="●",
            headline="",
            detail=f"Serving database '{state.target}'.",
        )
    message = state.message or "Unknown error"
    return StatusView(
        kind=state.kind,
        badge=first_line(message),
        icon="⚠",
        headline="Backend Error",
        detail=message,
        action="restart",
    )


def first_line(text: str) -> str:
    """Return the first line of text (badges are a single line)."""
    return text.splitlines()[0] if text else text
