"""Interactive status panel for the search backend.

A small full-screen prompt_toolkit view: header with the selected database and
a status badge, a content area describing the daemon state, and a footer with
key hints. The panel is an observer of DaemonSupervisor and only issues
commands; it never waits on the daemon.
"""

import asyncio
import logging
from typing import Any

from prompt_toolkit import Application
from prompt_toolkit.key_binding import KeyBindings, KeyPressEvent
from prompt_toolkit.layout import Dimension, HSplit, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.layout import Layout
from prompt_toolkit.styles import Style

from quarrybar.adapters.daemon.supervisor import DaemonSupervisor
from quarrybar.core.databases import DatabaseSelector
from quarrybar.core.presentation import QuarryColors, render_status
from quarrybar.domain.state import DaemonState


class StatusPanelUI:
    """Status panel using prompt_toolkit."""

    def __init__(
        self,
        supervisor: DaemonSupervisor,
        selector: DatabaseSelector,
        auto_start: bool = True,
    ):
        """Initialize status panel.

        Args:
            supervisor: Supervisor whose state is shown and commanded.
            selector: Database selector driving retargets.
            auto_start: Start the daemon when the panel opens.
        """
        self.supervisor = supervisor
        self.selector = selector
        self.auto_start = auto_start

        self._build_ui()

    def _build_ui(self) -> None:
        """Build the prompt_toolkit UI layout."""
        kb = self._create_key_bindings()

        header_window = Window(
            content=FormattedTextControl(self._get_header_text, focusable=False),
            height=Dimension.exact(1),
        )
        content_window = Window(
            content=FormattedTextControl(self._get_content_text, focusable=False),
            wrap_lines=True,
        )
        footer_window = Window(
            content=FormattedTextControl(self._get_footer_text, focusable=False),
            height=Dimension.exact(1),
        )

        main_container = HSplit(
            [
                header_window,
                Window(height=1, char="─", style="class:separator"),
                content_window,
                Window(height=1, char="─", style="class:separator"),
                footer_window,
            ]
        )

        style = Style.from_dict(QuarryColors.get_prompt_toolkit_style())

        self.app: Application[Any] = Application(
            layout=Layout(main_container),
            key_bindings=kb,
            style=style,
            full_screen=True,
            mouse_support=False,
        )

    def _create_key_bindings(self) -> KeyBindings:
        """Create key bindings for the UI.

        Returns:
            KeyBindings object.
        """
        kb = KeyBindings()

        @kb.add("s")
        def start(event: KeyPressEvent) -> None:
            self.supervisor.start()

        @kb.add("x")
        def stop(event: KeyPressEvent) -> None:
            self.supervisor.stop()

        @kb.add("r")
        def restart(event: KeyPressEvent) -> None:
            self.supervisor.restart()

        @kb.add("tab")
        def next_database(event: KeyPressEvent) -> None:
            self.selector.cycle(1)
            self.app.invalidate()

        @kb.add("s-tab")
        def previous_database(event: KeyPressEvent) -> None:
            self.selector.cycle(-1)
            self.app.invalidate()

        # Quit stops the backend; the caller's close() waits for it
        @kb.add("q")
        @kb.add("c-c")
        def quit_app(event: KeyPressEvent) -> None:
            self.supervisor.stop()
            event.app.exit()

        return kb

    def _on_state_change(self, state: DaemonState) -> None:
        # Runs on the supervisor thread; invalidate() is thread-safe
        self.app.invalidate()

    def _get_header_text(self) -> list[tuple[str, str]]:
        view = render_status(self.supervisor.state)
        return [
            ("class:header", " Quarry "),
            ("class:database", f"[{self.selector.current}]"),
            ("", "  "),
            (QuarryColors.style_class(view.kind), f"{view.icon} {view.badge}"),
        ]

    def _get_content_text(self) -> list[tuple[str, str]]:
        view = render_status(self.supervisor.state)
        parts: list[tuple[str, str]] = [("", "\n")]
        if view.headline:
            parts.append(("class:headline", f"  {view.headline}\n"))
        parts.append(("", f"  {view.detail}\n"))
        if view.action:
            key = view.action[0]
            parts.append(("", "\n  "))
            parts.append(("class:action", f" {key}: {view.action.capitalize()} "))
            parts.append(("", "\n"))
        return parts

    def _get_footer_text(self) -> list[tuple[str, str]]:
        return [
            ("class:dimmed", " s:start x:stop r:restart tab:database q:quit"),
        ]

    async def run_async(self) -> None:
        """Run the panel asynchronously until the user quits."""
        unsubscribe = self.supervisor.subscribe(self._on_state_change)
        unfollow = self.supervisor.follow(self.selector)
        try:
            if self.auto_start:
                self.supervisor.start()
            await self.app.run_async()
        finally:
            unfollow()
            unsubscribe()

    def run(self) -> None:
        """Run the panel.

        Suppresses all logging output while the panel is on screen to prevent
        display corruption, then restores original logging state after exit.
        """
        # prompt_toolkit runs in full-screen mode, so any stderr output
        # (including logging) would corrupt the UI
        logging.disable(logging.CRITICAL)
        try:
            asyncio.run(self.run_async())
        finally:
            logging.disable(logging.NOTSET)
