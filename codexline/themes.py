"""Theme catalog and theme merging.

A theme is sparse: it may replace the style block wholesale and, for the
segments it lists, replace that segment's icon block and/or color block.
Everything else in the base config is left exactly as it was.
"""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import tomli_w

from codexline.config import (
    ColorConfig, Config, IconConfig, SegmentId, StyleConfig, StyleMode,
    atomic_write, colors_to_dict, icon_to_dict, parse_colors, parse_icon,
    parse_segment_id, parse_style, style_to_dict, sub_table,
)
from codexline.errors import ConfigError, EnvironmentFailure, ThemeNotFound

log = logging.getLogger(__name__)

THEME_EXT = ".toml"


@dataclass
class ThemeSegment:
    id: SegmentId
    icon: Optional[IconConfig] = None
    colors: Optional[ColorConfig] = None


@dataclass
class ThemeSpec:
    name: str
    style: Optional[StyleConfig] = None
    segments: List[ThemeSegment] = field(default_factory=list)


# ── Built-in themes ───────────────────────────────────────────────────

_PALETTE_ORDER = [
    SegmentId.MODEL, SegmentId.CWD, SegmentId.GIT,
    SegmentId.CONTEXT, SegmentId.TOKENS, SegmentId.LIMITS,
]

# name -> (mode, separator, colors for model/cwd/git/context/tokens/limits)
_BUILTINS: Dict[str, tuple] = {
    "default": (StyleMode.NERD_FONT, " · ", None),
    "minimal": (StyleMode.PLAIN, " | ", None),
    "gruvbox": (
        StyleMode.NERD_FONT, " ❯ ",
        ["bright_yellow", "bright_green", "bright_red", "yellow", "green", "red"],
    ),
    "nord": (
        StyleMode.NERD_FONT, " • ",
        ["cyan", "bright_cyan", "bright_blue", "bright_white", "white", "bright_magenta"],
    ),
    "powerline-dark": (
        StyleMode.POWERLINE, " \ue0b1 ",
        ["bright_white", "bright_blue", "bright_magenta", "bright_yellow", "bright_green", "bright_red"],
    ),
    "powerline-light": (
        StyleMode.POWERLINE, " \ue0b1 ",
        ["blue", "cyan", "magenta", "yellow", "green", "red"],
    ),
    "powerline-rose-pine": (
        StyleMode.POWERLINE, " \ue0b1 ",
        ["bright_magenta", "bright_cyan", "bright_yellow", "bright_blue", "bright_green", "bright_red"],
    ),
    "powerline-tokyo-night": (
        StyleMode.POWERLINE, " \ue0b1 ",
        ["bright_cyan", "bright_blue", "bright_magenta", "bright_white", "bright_green", "bright_red"],
    ),
}

BUILTIN_THEME_NAMES = list(_BUILTINS)


def builtin_theme(name: str) -> Optional[ThemeSpec]:
    entry = _BUILTINS.get(name)
    if entry is None:
        return None
    mode, separator, palette = entry
    segments = []
    for seg_id, color in zip(_PALETTE_ORDER, palette or []):
        segments.append(ThemeSegment(id=seg_id, colors=ColorConfig(icon=color, text=color)))
    return ThemeSpec(name=name, style=StyleConfig(mode=mode, separator=separator), segments=segments)


# ── TOML (de)serialization ───────────────────────────────────────────


def theme_from_dict(data: dict, fallback_name: str) -> ThemeSpec:
    style = parse_style(sub_table(data, "style")) if "style" in data else None
    raw_segments = data.get("segments", [])
    if not isinstance(raw_segments, list):
        raise ConfigError("'segments' must be an array of tables")
    segments = []
    for raw in raw_segments:
        if not isinstance(raw, dict) or "id" not in raw:
            raise ConfigError("every theme segment needs an 'id'")
        segments.append(ThemeSegment(
            id=parse_segment_id(raw["id"]),
            icon=parse_icon(sub_table(raw, "icon")) if "icon" in raw else None,
            colors=parse_colors(sub_table(raw, "colors")) if "colors" in raw else None,
        ))
    return ThemeSpec(name=str(data.get("name", fallback_name)), style=style, segments=segments)


def theme_to_dict(theme: ThemeSpec) -> dict:
    data: dict = {"name": theme.name}
    if theme.style is not None:
        data["style"] = style_to_dict(theme.style)
    segments = []
    for seg in theme.segments:
        entry: dict = {"id": seg.id.value}
        if seg.icon is not None:
            entry["icon"] = icon_to_dict(seg.icon)
        if seg.colors is not None:
            entry["colors"] = colors_to_dict(seg.colors)
        segments.append(entry)
    data["segments"] = segments
    return data


# ── Theme store ───────────────────────────────────────────────────────


def theme_path(themes_dir: Path, name: str) -> Path:
    return themes_dir / f"{name}{THEME_EXT}"


def load_theme(name: str, themes_dir: Path) -> ThemeSpec:
    """Built-ins win over files of the same name."""
    theme = builtin_theme(name)
    if theme is not None:
        return theme
    path = theme_path(themes_dir, name)
    if not path.is_file():
        raise ThemeNotFound(name)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise EnvironmentFailure(f"failed to read theme file: {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"failed to parse theme file: {path}: {e}") from e
    try:
        return theme_from_dict(data, name)
    except ConfigError as e:
        raise ConfigError(f"{path}: {e}") from e


def list_theme_names(themes_dir: Path) -> List[str]:
    names = set(BUILTIN_THEME_NAMES)
    if themes_dir.is_dir():
        try:
            for p in themes_dir.iterdir():
                if p.is_file() and p.suffix == THEME_EXT:
                    names.add(p.stem)
        except OSError as e:
            raise EnvironmentFailure(f"failed to read themes dir: {themes_dir}: {e}") from e
    return sorted(names)


def write_builtin_themes_if_missing(themes_dir: Path) -> List[Path]:
    """Materialize built-in themes as editable TOML. Existing files are kept."""
    written = []
    for name in BUILTIN_THEME_NAMES:
        path = theme_path(themes_dir, name)
        if path.exists():
            continue
        atomic_write(path, tomli_w.dumps(theme_to_dict(builtin_theme(name))))
        written.append(path)
    if written:
        log.debug("wrote %d built-in theme(s) to %s", len(written), themes_dir)
    return written


# ── Merge ─────────────────────────────────────────────────────────────


def merge_theme(base: Config, theme: ThemeSpec) -> Config:
    merged = base.copy()
    merged.theme = theme.name
    if theme.style is not None:
        merged.style = StyleConfig(mode=theme.style.mode, separator=theme.style.separator)
    by_id = {seg.id: seg for seg in merged.segments}
    for override in theme.segments:
        target = by_id.get(override.id)
        if target is None:
            continue
        if override.icon is not None:
            target.icon = IconConfig(plain=override.icon.plain, nerd_font=override.icon.nerd_font)
        if override.colors is not None:
            target.colors = ColorConfig(
                icon=override.colors.icon,
                text=override.colors.text,
                background=override.colors.background,
            )
    return merged


def apply_theme(base: Config, theme_name: str, themes_dir: Path) -> Config:
    theme = load_theme(theme_name, themes_dir)
    merged = merge_theme(base, theme)
    merged.theme = theme_name
    try:
        merged.validate()
    except ConfigError as e:
        raise ConfigError(f"theme {theme_name}: {e}") from None
    return merged
