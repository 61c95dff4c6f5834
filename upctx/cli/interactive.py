"""Interactive navigation of the Upbound hierarchy in the terminal.

Renders a Rich Live list for the current node and reads keys with readchar.
Everything runs on one thread: while ``items`` or ``accept`` is running the
model is marked busy, a spinner is shown and key presses are ignored.
"""

from typing import Callable, List, Optional

import readchar
from loguru import logger
from rich.console import Console, Group
from rich.live import Live
from rich.spinner import Spinner
from rich.text import Text

from upctx.ctx.navigation import (
    Accepting,
    Back,
    Item,
    NavigationContext,
    NavigationNode,
    Termination,
)
from upctx.errors import UpctxError
from upctx.utils.rich_console import (
    INACTIVE_SEGMENT_STYLE,
    UPBOUND_BRAND_STYLE,
    get_console,
    styled_breadcrumbs,
)

BACK_KEYS = (readchar.key.LEFT, "h")
SELECT_KEYS = (readchar.key.RIGHT, readchar.key.ENTER, "\r", "\n", "l")
EXIT_KEYS = (readchar.key.ESC, readchar.key.CTRL_C)
QUIT_KEYS = ("q", readchar.key.F10)
UP_KEYS = (readchar.key.UP, "k")
DOWN_KEYS = (readchar.key.DOWN, "j")


class NavigatorModel:
    """State of the interactive list, independent of the terminal."""

    def __init__(self, ctx: NavigationContext, node: NavigationNode, on_busy: Optional[Callable[[], None]] = None):
        self.ctx = ctx
        self.node = node
        self.items: List[Item] = []
        self.cursor = 0
        self.error: Optional[str] = None
        self.busy = False
        self.done = False
        self.termination: Optional[Termination] = None
        self.on_busy = on_busy or (lambda: None)

    def _call(self, func):
        self.busy = True
        self.on_busy()
        try:
            return func()
        finally:
            self.busy = False

    @property
    def accepting(self) -> bool:
        return isinstance(self.node, Accepting) and self.node.can_accept()

    def load(self) -> None:
        """List the children of the current node. Errors propagate."""
        self.items = self._call(lambda: self.node.items(self.ctx))
        self.cursor = self._initial_cursor()

    def _initial_cursor(self) -> int:
        for index, item in enumerate(self.items):
            if not item.back and not item.not_selectable:
                return index
        for index, item in enumerate(self.items):
            if not item.not_selectable:
                return index
        return 0

    def _move(self, step: int) -> None:
        if not self.items:
            return
        index = self.cursor
        for _ in range(len(self.items)):
            index = (index + step) % len(self.items)
            if not self.items[index].not_selectable:
                self.cursor = index
                return

    def _enter(self, node: NavigationNode) -> None:
        items = self._call(lambda: node.items(self.ctx))
        self.node = node
        self.items = items
        self.cursor = self._initial_cursor()

    def _finish(self, termination: Optional[Termination]) -> None:
        self.termination = termination
        self.done = True

    def _select(self) -> None:
        if not self.items:
            return
        item = self.items[self.cursor]
        if item.not_selectable or item.on_enter is None:
            return
        result = self._call(lambda: item.on_enter(self.ctx))
        if isinstance(result, Termination):
            self._finish(result)
        else:
            self._enter(result)

    def _back(self) -> None:
        if isinstance(self.node, Back) and self.node.can_back():
            self._enter(self.node.back())

    def _accept(self) -> None:
        if self.accepting:
            self._finish(Termination(self._call(lambda: self.node.accept(self.ctx))))

    def handle_key(self, key: str) -> None:
        if self.busy or self.done:
            return
        if key in EXIT_KEYS:
            self._finish(None)
            return

        self.error = None
        try:
            if key in UP_KEYS:
                self._move(-1)
            elif key in DOWN_KEYS:
                self._move(1)
            elif key in BACK_KEYS:
                self._back()
            elif key in SELECT_KEYS:
                self._select()
            elif key in QUIT_KEYS:
                self._accept()
        except UpctxError as error:
            logger.debug(f"Navigation step failed: {error}")
            self.error = str(error)

    def help_text(self) -> str:
        parts = ["←/h back", "→/l/enter select", "esc/ctrl+c exit"]
        if self.accepting:
            parts.append("q/f10 switch context & quit")
        return " • ".join(parts)

    def render(self):
        lines = [styled_breadcrumbs(self.node.breadcrumbs()), Text("")]
        for index, item in enumerate(self.items):
            kind = f"[{item.kind}]" if item.kind else ""
            line = Text(f"{kind:>15} ", style=INACTIVE_SEGMENT_STYLE)
            style = UPBOUND_BRAND_STYLE if index == self.cursor else ""
            if item.not_selectable:
                style = INACTIVE_SEGMENT_STYLE
            line.append(item.text, style=style)
            lines.append(line)
        if self.busy:
            lines.append(Spinner("dots", text="Loading..."))
        if self.error:
            lines.append(Text(self.error, style="bold red"))
        lines.append(Text(""))
        lines.append(Text(self.help_text(), style=INACTIVE_SEGMENT_STYLE))
        return Group(*lines)


def run_interactive(
    ctx: NavigationContext,
    node: NavigationNode,
    console: Optional[Console] = None,
    read_key: Callable[[], str] = readchar.readkey,
) -> Optional[str]:
    """Run the interactive list until the operator exits or accepts a node.

    Returns the termination message, or None when the operator exited.
    """
    console = console or get_console()
    model = NavigatorModel(ctx, node)
    model.load()

    with Live(model.render(), console=console, refresh_per_second=15, transient=True) as live:
        model.on_busy = lambda: live.update(model.render(), refresh=True)
        while not model.done:
            try:
                key = read_key()
            except (KeyboardInterrupt, EOFError):
                break
            model.handle_key(key)
            live.update(model.render())

    if model.termination is None:
        return None
    return model.termination.message
