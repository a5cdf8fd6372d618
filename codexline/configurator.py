"""Configurator state machine.

Three focus regions (themes, segments, actions) over a working copy of the
config. Keys arrive as textual key names (``"tab"``, ``"up"``, ``"space"``,
``"J"`` ...). Nothing here touches the terminal; :mod:`codexline.tui` only
draws this state and forwards key presses.

The preview is re-derived from scratch on every frame by running the whole
pipeline (theme merge, collection, segment build, render), so it always shows
exactly what Save would persist.
"""

import enum
import logging
from pathlib import Path
from typing import Callable, List, Optional

from codexline import config as config_store
from codexline.collect import Collection, collect
from codexline.config import Config
from codexline.errors import CodexlineError
from codexline.render import render_line
from codexline.segments import build_segments
from codexline.themes import apply_theme

log = logging.getLogger(__name__)

CollectFn = Callable[[Config], Collection]


class Focus(str, enum.Enum):
    THEMES = "themes"
    SEGMENTS = "segments"
    ACTIONS = "actions"


FOCUS_ORDER = [Focus.THEMES, Focus.SEGMENTS, Focus.ACTIONS]

ACTIONS = ["Save", "Reset", "Quit"]

# handle_key outcomes
SAVE = "save"
QUIT = "quit"

HINT = "Tab switch focus, Space toggle segment, J/K reorder, Enter run action, S save, R reset, Q quit"


def render_preview(working: Config, theme_name: str, themes_dir: Path,
                   collect_fn: CollectFn = collect) -> str:
    effective = apply_theme(working, theme_name, themes_dir)
    ctx = collect_fn(effective).context
    return render_line(build_segments(effective, ctx), effective.style.separator, plain=True)


class ConfiguratorState:
    def __init__(self, base: Config, theme_names: List[str], themes_dir: Path,
                 collect_fn: CollectFn = collect):
        self.original = base.copy()
        self.working = base.copy()
        self.theme_names = list(theme_names) or ["default"]
        self.themes_dir = themes_dir
        self.collect_fn = collect_fn

        self.focus = Focus.SEGMENTS
        self.theme_index = self._initial_theme_index()
        self.segment_index = 0
        self.action_index = 0
        self.message = HINT
        self.last_preview = ""
        self.preview_error: Optional[str] = None

    def _initial_theme_index(self) -> int:
        try:
            return self.theme_names.index(self.original.theme)
        except ValueError:
            return 0

    @property
    def selected_theme(self) -> str:
        return self.theme_names[self.theme_index]

    # -- Navigation ----------------------------------------------------

    def cycle_focus(self):
        idx = FOCUS_ORDER.index(self.focus)
        self.focus = FOCUS_ORDER[(idx + 1) % len(FOCUS_ORDER)]

    def move_theme(self, delta: int):
        self.theme_index = (self.theme_index + delta) % len(self.theme_names)

    def move_segment(self, delta: int):
        n = len(self.working.segments)
        if n:
            self.segment_index = (self.segment_index + delta) % n

    def move_action(self, delta: int):
        self.action_index = (self.action_index + delta) % len(ACTIONS)

    # -- Segment edits ---------------------------------------------------

    def toggle_segment(self):
        segs = self.working.segments
        if not segs:
            return
        seg = segs[min(self.segment_index, len(segs) - 1)]
        seg.enabled = not seg.enabled

    def swap_segment(self, delta: int):
        """Swap the selected segment with its neighbour; no-op at either end."""
        segs = self.working.segments
        if not segs:
            return
        idx = min(self.segment_index, len(segs) - 1)
        target = idx + delta
        if 0 <= target < len(segs):
            segs[idx], segs[target] = segs[target], segs[idx]
            self.segment_index = target

    def reset(self):
        self.working = self.original.copy()
        self.theme_index = self._initial_theme_index()
        self.segment_index = 0
        self.message = "Configuration reset to original"

    # -- Key dispatch ----------------------------------------------------

    def _handle_focused(self, key: str) -> bool:
        if self.focus == Focus.THEMES:
            if key == "up":
                self.move_theme(-1)
            elif key == "down":
                self.move_theme(1)
            else:
                return False
            return True

        if self.focus == Focus.SEGMENTS:
            if not self.working.segments:
                return False
            if key == "up":
                self.move_segment(-1)
            elif key == "down":
                self.move_segment(1)
            elif key == "space":
                self.toggle_segment()
            elif key in ("j", "J"):
                self.swap_segment(1)
            elif key in ("k", "K"):
                self.swap_segment(-1)
            else:
                return False
            return True

        if key == "up":
            self.move_action(-1)
        elif key == "down":
            self.move_action(1)
        else:
            return False
        return True

    def handle_key(self, key: str) -> Optional[str]:
        """Apply one key press. Returns SAVE or QUIT when the session should end."""
        if key == "tab":
            self.cycle_focus()
            return None
        if self._handle_focused(key):
            return None

        if key == "enter" and self.focus == Focus.ACTIONS:
            action = ACTIONS[self.action_index]
            if action == "Save":
                return SAVE
            if action == "Reset":
                self.reset()
                return None
            return QUIT
        if key in ("escape", "q", "Q"):
            return QUIT
        if key in ("s", "S"):
            return SAVE
        if key in ("r", "R"):
            self.reset()
        return None

    # -- Results ---------------------------------------------------------

    def committed(self) -> Config:
        return apply_theme(self.working, self.selected_theme, self.themes_dir)

    def save(self, path: Optional[Path] = None) -> Config:
        merged = self.committed()
        config_store.save(merged, path)
        return merged

    def preview(self) -> str:
        """Current preview line; keeps the last good one if the pipeline fails."""
        try:
            self.last_preview = render_preview(
                self.working, self.selected_theme, self.themes_dir, self.collect_fn
            )
            self.preview_error = None
        except CodexlineError as e:
            log.debug("preview failed: %s", e)
            self.preview_error = str(e)
        return self.last_preview
