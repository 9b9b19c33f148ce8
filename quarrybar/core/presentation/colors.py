"""Centralized color definitions for all quarrybar output.

Provides a consistent color scheme across CLI commands and the status panel.
Supports both click-style colors and prompt_toolkit styles.
"""

from typing import Literal

from quarrybar.domain.state import StateKind

# Type aliases for color values
ClickColor = Literal["black", "red", "green", "yellow", "blue", "magenta", "cyan", "white"]


class QuarryColors:
    """Centralized color palette for consistent output across quarrybar.

    Defines colors for every daemon state using click-compatible named colors,
    and the matching prompt_toolkit style classes.
    """

    # === Daemon State Colors ===
    STOPPED_FG: ClickColor = "white"
    STARTING_FG: ClickColor = "yellow"  # Closest terminal color to orange
    RUNNING_FG: ClickColor = "green"
    ERROR_FG: ClickColor = "red"

    STATE_FG: dict[StateKind, ClickColor] = {
        StateKind.STOPPED: STOPPED_FG,
        StateKind.STARTING: STARTING_FG,
        StateKind.RUNNING: RUNNING_FG,
        StateKind.ERROR: ERROR_FG,
    }

    # === Helper Methods ===

    @staticmethod
    def get_prompt_toolkit_style() -> dict[str, str]:
        """Get style dictionary for prompt_toolkit Style.from_dict().

        Uses ANSI color names instead of hex codes so colors adapt to the
        user's terminal theme.

        Returns:
            Dictionary mapping style class names to style definitions.
        """
        return {
            "header": "bold",
            "separator": "fg:ansibrightblack",
            "dimmed": "fg:ansibrightblack",
            "database": "fg:ansicyan",
            "state-stopped": "fg:ansibrightblack",
            "state-starting": "fg:ansiyellow",
            "state-running": "fg:ansigreen bold",
            "state-error": "fg:ansired",
            "headline": "bold",
            "action": "reverse",
        }

    @staticmethod
    def style_class(kind: StateKind) -> str:
        """prompt_toolkit style class for a daemon state."""
        return f"class:state-{kind.value}"

    @staticmethod
    def click_state(text: str, kind: StateKind) -> str:
        """Style text in the color of a daemon state for click output.

        Args:
            text: Text to style.
            kind: State whose color to use.

        Returns:
            Styled text using click.style().
        """
        import click
        return click.style(
            text,
            fg=QuarryColors.STATE_FG[kind],
            dim=kind is StateKind.STOPPED,
            bold=kind is StateKind.RUNNING,
        )
