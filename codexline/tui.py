"""Textual front-ends: the configurator and the main menu.

Both apps only draw state and forward key names. Raw mode and the alternate
screen belong to ``App.run()`` and are released on every exit path, so the
CLI acts on the returned value only after the terminal is restored.
"""

from pathlib import Path
from typing import Optional

from rich.style import Style
from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.reactive import reactive
from textual.theme import Theme
from textual.widgets import Static

from codexline.config import Config, themes_dir
from codexline.configurator import ACTIONS, QUIT, SAVE, ConfiguratorState, Focus
from codexline.errors import CodexlineError
from codexline.themes import list_theme_names

# ── Textual Theme ─────────────────────────────────────────────────────

CODEXLINE_THEME = Theme(
    name="codexline",
    primary="#00cccc",
    secondary="#cc00cc",
    warning="#cc0000",
    success="#00cc00",
    accent="#00cccc",
    dark=True,
    variables={
        "header-color": "#00ffff",
        "selected-fg": "#ffffff",
        "dim-color": "#888888",
        "enabled-color": "#00ff00",
        "disabled-color": "#666666",
        "status-color": "#00ff00",
        "warn-color": "#ff4444",
    },
)

_THEME_COLORS = dict(CODEXLINE_THEME.variables)


def _tc(role: str, fallback: str = "") -> str:
    """Hex color for *role*; Rich styles cannot read CSS $variables."""
    return _THEME_COLORS.get(role, fallback)


DEFAULT_CSS = """
Screen {
    background: $surface;
}

#header {
    height: 3;
    dock: top;
    padding: 0 1;
    border: heavy $accent;
}

#panes {
    height: 1fr;
}

.pane {
    width: 1fr;
    border: heavy $accent-darken-2;
    padding: 0 1;
}

.pane.focused {
    border: heavy $accent-lighten-2;
}

#preview {
    height: 3;
    border: heavy $accent;
    padding: 0 1;
}

#menu {
    border: heavy $accent;
    padding: 1 2;
    height: 1fr;
}

#footer {
    height: 1;
    dock: bottom;
    padding: 0 1;
}
"""


class FooterBar(Static):
    """Single-line status bar at the bottom of the screen."""

    status = reactive("")
    error = reactive("")

    def render(self) -> Text:
        text = Text()
        if self.error:
            text.append(f" {self.error} ", style=Style(color=_tc("warn-color", "#ff4444"), bold=True))
        else:
            text.append(f" {self.status} ", style=Style(color=_tc("dim-color", "#888888")))
        return text


def _title(label: str) -> Text:
    return Text(label, style=Style(color=_tc("header-color", "#00ffff"), bold=True), justify="center")


def _list_text(heading: str, rows, selected: int, active: bool) -> Text:
    hdr = Style(color=_tc("header-color", "#00ffff"), bold=True)
    sel_style = Style(color=_tc("selected-fg", "#ffffff"), bold=True, reverse=active)
    text = Text()
    text.append(f"{heading}\n\n", style=hdr)
    for i, (label, style) in enumerate(rows):
        prefix = " ▸ " if i == selected else "   "
        if i == selected:
            text.append(f"{prefix}{label}", style=sel_style)
        else:
            text.append(prefix)
            text.append(label, style=style)
        if i < len(rows) - 1:
            text.append("\n")
    return text


# ── Configurator ──────────────────────────────────────────────────────


class ConfiguratorApp(App[Optional[Config]]):
    """Edit theme, segment order and visibility; exits with the saved config or None."""

    CSS = DEFAULT_CSS
    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [
        Binding("ctrl+c", "quit_now", "Quit", show=False, priority=True),
        Binding("tab", "cycle_focus", "Focus", show=False, priority=True),
    ]

    def __init__(self, state: ConfiguratorState, cfg_path: Optional[Path] = None):
        super().__init__()
        self.register_theme(CODEXLINE_THEME)
        self.theme = "codexline"
        self.state = state
        self.cfg_path = cfg_path

    def compose(self) -> ComposeResult:
        yield Static(id="header")
        with Horizontal(id="panes"):
            yield Static(id="themes-pane", classes="pane")
            yield Static(id="segments-pane", classes="pane")
            yield Static(id="actions-pane", classes="pane")
        yield Static(id="preview")
        yield FooterBar(id="footer")

    def on_mount(self):
        self.query_one("#header", Static).update(_title("codexline configurator"))
        self._refresh()

    def _refresh(self):
        st = self.state
        dim = Style(color=_tc("dim-color", "#888888"))
        on = Style(color=_tc("enabled-color", "#00ff00"))
        off = Style(color=_tc("disabled-color", "#666666"))

        theme_rows = [(name, dim) for name in st.theme_names]
        seg_rows = [
            (f"[{'x' if seg.enabled else ' '}] {seg.id.label}", on if seg.enabled else off)
            for seg in st.working.segments
        ]
        action_rows = [(label, dim) for label in ACTIONS]

        panes = (
            ("#themes-pane", Focus.THEMES, "Themes", theme_rows, st.theme_index),
            ("#segments-pane", Focus.SEGMENTS, "Segments", seg_rows, st.segment_index),
            ("#actions-pane", Focus.ACTIONS, "Actions", action_rows, st.action_index),
        )
        for selector, focus, heading, rows, idx in panes:
            pane = self.query_one(selector, Static)
            pane.update(_list_text(heading, rows, idx, st.focus == focus))
            pane.set_class(st.focus == focus, "focused")

        preview = st.preview()
        self.query_one("#preview", Static).update(Text(preview or "(no segments to show)"))

        footer = self.query_one("#footer", FooterBar)
        footer.status = st.message
        footer.error = f"Preview error: {st.preview_error}" if st.preview_error else ""

    def _dispatch(self, key: str):
        outcome = self.state.handle_key(key)
        if outcome == QUIT:
            self.exit(None)
            return
        if outcome == SAVE:
            try:
                saved = self.state.save(self.cfg_path)
            except CodexlineError as e:
                self.state.message = f"Save failed: {e}"
            else:
                self.exit(saved)
                return
        self._refresh()

    def action_cycle_focus(self):
        self._dispatch("tab")

    def action_quit_now(self):
        self.exit(None)

    def on_key(self, event):
        event.stop()
        event.prevent_default()
        self._dispatch(event.key)


def run_configurator(cfg: Config, cfg_path: Optional[Path] = None) -> Optional[Config]:
    tdir = themes_dir()
    state = ConfiguratorState(cfg, list_theme_names(tdir), tdir)
    return ConfiguratorApp(state, cfg_path).run()


# ── Main menu ─────────────────────────────────────────────────────────

MENU_ITEMS = [
    ("render", "Render Statusline"),
    ("configure", "Open Configurator"),
    ("init", "Init Config"),
    ("check", "Check Config"),
    ("doctor", "Run Diagnostics"),
    ("exit", "Exit"),
]


class MainMenuApp(App[Optional[str]]):
    """Pick one action; the CLI runs it once the terminal is released."""

    CSS = DEFAULT_CSS
    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [
        Binding("ctrl+c", "quit_now", "Quit", show=False, priority=True),
    ]

    def __init__(self):
        super().__init__()
        self.register_theme(CODEXLINE_THEME)
        self.theme = "codexline"
        self.cur = 0

    def compose(self) -> ComposeResult:
        yield Static(id="header")
        yield Static(id="menu")
        yield FooterBar(id="footer")

    def on_mount(self):
        self.query_one("#header", Static).update(_title("codexline"))
        self.query_one("#footer", FooterBar).status = "↑/↓ Move  ⏎ Select  q/Esc Exit"
        self._refresh()

    def _refresh(self):
        dim = Style(color=_tc("dim-color", "#888888"))
        rows = [(label, dim) for _, label in MENU_ITEMS]
        self.query_one("#menu", Static).update(_list_text("Main Menu", rows, self.cur, True))

    def action_quit_now(self):
        self.exit(None)

    def on_key(self, event):
        key = event.key
        event.stop()
        event.prevent_default()
        n = len(MENU_ITEMS)
        if key in ("escape", "q", "Q"):
            self.exit(None)
        elif key in ("up", "k"):
            self.cur = (self.cur - 1) % n
            self._refresh()
        elif key in ("down", "j"):
            self.cur = (self.cur + 1) % n
            self._refresh()
        elif key in ("enter", "return"):
            action = MENU_ITEMS[self.cur][0]
            self.exit(None if action == "exit" else action)


def run_main_menu() -> Optional[str]:
    return MainMenuApp().run()
