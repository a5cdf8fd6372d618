"""Configuration model, defaults and the on-disk config store.

The config lives in ``<codex_home>/codexline/config.toml``. Every key is
optional when loading; missing ones fall back to the defaults below. The file
is validated on every load and again before every write.
"""

import copy
import enum
import logging
import os
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomli_w
from rich.color import Color, ColorParseError

from codexline.errors import ConfigError, EnvironmentFailure

log = logging.getLogger(__name__)


# ── Paths ─────────────────────────────────────────────────────────────


def codex_home() -> Path:
    env = os.environ.get("CODEX_HOME")
    if env:
        return Path(env)
    return Path.home() / ".codex"


def config_dir() -> Path:
    return codex_home() / "codexline"


def config_path() -> Path:
    return config_dir() / "config.toml"


def themes_dir() -> Path:
    return config_dir() / "themes"


# ── Enumerations ──────────────────────────────────────────────────────


class SegmentId(str, enum.Enum):
    MODEL = "model"
    CWD = "cwd"
    GIT = "git"
    CONTEXT = "context"
    TOKENS = "tokens"
    LIMITS = "limits"
    SESSION = "session"
    CODEX_VERSION = "codex_version"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class StyleMode(str, enum.Enum):
    PLAIN = "plain"
    NERD_FONT = "nerd_font"
    POWERLINE = "powerline"


# ── Data ──────────────────────────────────────────────────────────────


@dataclass
class IconConfig:
    plain: str = ""
    nerd_font: str = ""


@dataclass
class ColorConfig:
    icon: Optional[str] = None
    text: Optional[str] = None
    background: Optional[str] = None


@dataclass
class StyleConfig:
    mode: StyleMode = StyleMode.NERD_FONT
    separator: str = " | "


@dataclass
class RolloutConfig:
    scan_depth_days: int = 14
    max_files: int = 200
    path_override: Optional[Path] = None


@dataclass
class SegmentConfig:
    id: SegmentId
    enabled: bool = True
    icon: IconConfig = field(default_factory=IconConfig)
    colors: ColorConfig = field(default_factory=ColorConfig)
    bold: bool = False
    options: Dict[str, Any] = field(default_factory=dict)

    def option_bool(self, key: str, default: bool) -> bool:
        value = self.options.get(key)
        return value if isinstance(value, bool) else default

    def option_str(self, key: str, default: str) -> str:
        value = self.options.get(key)
        return value if isinstance(value, str) else default


@dataclass
class Config:
    theme: str = "default"
    style: StyleConfig = field(default_factory=StyleConfig)
    rollout: RolloutConfig = field(default_factory=RolloutConfig)
    segments: List[SegmentConfig] = field(default_factory=lambda: default_segments())

    def segment(self, seg_id: SegmentId) -> Optional[SegmentConfig]:
        for seg in self.segments:
            if seg.id == seg_id:
                return seg
        return None

    def copy(self) -> "Config":
        return copy.deepcopy(self)

    def validate(self):
        if not self.segments:
            raise ConfigError("segments cannot be empty")
        seen = set()
        for seg in self.segments:
            if seg.id in seen:
                raise ConfigError(f"duplicate segment id: {seg.id.value}")
            seen.add(seg.id)
            for role in ("icon", "text", "background"):
                value = getattr(seg.colors, role)
                if value is None:
                    continue
                try:
                    Color.parse(value)
                except ColorParseError:
                    raise ConfigError(
                        f"segment {seg.id.value}: invalid {role} color '{value}'"
                    ) from None
        if self.rollout.max_files <= 0:
            raise ConfigError("rollout.max_files must be greater than 0")
        if self.rollout.scan_depth_days <= 0:
            raise ConfigError("rollout.scan_depth_days must be greater than 0")


# ── Defaults ──────────────────────────────────────────────────────────

# (id, plain icon, nerd-font icon, color, enabled)
_DEFAULT_SEGMENTS = [
    (SegmentId.MODEL, "M", "\U000f06a9", "cyan", True),
    (SegmentId.CWD, "DIR", "\uf07c", "blue", True),
    (SegmentId.GIT, "GIT", "\ue725", "magenta", True),
    (SegmentId.CONTEXT, "CTX", "\uf0e4", "yellow", True),
    (SegmentId.TOKENS, "TOK", "\uf1c0", "green", True),
    (SegmentId.LIMITS, "LIM", "\uf252", "red", True),
    (SegmentId.SESSION, "SID", "\uf2c2", "bright_black", False),
    (SegmentId.CODEX_VERSION, "VER", "\uf412", "white", False),
]


def default_segment_for(seg_id: SegmentId) -> SegmentConfig:
    for sid, plain, nerd, color, enabled in _DEFAULT_SEGMENTS:
        if sid == seg_id:
            return SegmentConfig(
                id=sid,
                enabled=enabled,
                icon=IconConfig(plain=plain, nerd_font=nerd),
                colors=ColorConfig(icon=color, text=color),
            )
    raise KeyError(seg_id)


def default_segments() -> List[SegmentConfig]:
    return [default_segment_for(sid) for sid, *_ in _DEFAULT_SEGMENTS]


# ── (De)serialization ────────────────────────────────────────────────


def sub_table(data: dict, key: str) -> dict:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a table")
    return value


def bool_field(data: dict, key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a boolean")
    return value


def parse_segment_id(raw: Any) -> SegmentId:
    try:
        return SegmentId(raw)
    except ValueError:
        valid = ", ".join(s.value for s in SegmentId)
        raise ConfigError(f"unknown segment id '{raw}' (expected one of: {valid})") from None


def parse_style(data: dict) -> StyleConfig:
    defaults = StyleConfig()
    raw_mode = data.get("mode", defaults.mode.value)
    try:
        mode = StyleMode(raw_mode)
    except ValueError:
        valid = ", ".join(m.value for m in StyleMode)
        raise ConfigError(f"unknown style mode '{raw_mode}' (expected one of: {valid})") from None
    return StyleConfig(mode=mode, separator=str(data.get("separator", defaults.separator)))


def parse_icon(data: dict) -> IconConfig:
    return IconConfig(plain=str(data.get("plain", "")), nerd_font=str(data.get("nerd_font", "")))


def parse_colors(data: dict) -> ColorConfig:
    def opt(key):
        value = data.get(key)
        return None if value is None else str(value)

    return ColorConfig(icon=opt("icon"), text=opt("text"), background=opt("background"))


def config_from_dict(data: dict) -> Config:
    cfg = Config()
    cfg.theme = str(data.get("theme", cfg.theme))
    if "style" in data:
        cfg.style = parse_style(sub_table(data, "style"))

    rollout = sub_table(data, "rollout")
    try:
        cfg.rollout = RolloutConfig(
            scan_depth_days=int(rollout.get("scan_depth_days", cfg.rollout.scan_depth_days)),
            max_files=int(rollout.get("max_files", cfg.rollout.max_files)),
            path_override=Path(rollout["path_override"]).expanduser()
            if rollout.get("path_override") else None,
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid rollout settings: {e}") from None

    if "segments" in data:
        raw_segments = data["segments"]
        if not isinstance(raw_segments, list):
            raise ConfigError("'segments' must be an array of tables")
        segments = []
        for raw in raw_segments:
            if not isinstance(raw, dict) or "id" not in raw:
                raise ConfigError("every segment needs an 'id'")
            segments.append(SegmentConfig(
                id=parse_segment_id(raw["id"]),
                enabled=bool_field(raw, "enabled", True),
                icon=parse_icon(sub_table(raw, "icon")),
                colors=parse_colors(sub_table(raw, "colors")),
                bold=bool_field(raw, "bold", False),
                options=dict(sub_table(raw, "options")),
            ))
        cfg.segments = segments
    return cfg


def _drop_none(d: dict) -> dict:
    return {k: v for k, v in d.items() if v is not None}


def style_to_dict(style: StyleConfig) -> dict:
    return {"mode": style.mode.value, "separator": style.separator}


def icon_to_dict(icon: IconConfig) -> dict:
    return {"plain": icon.plain, "nerd_font": icon.nerd_font}


def colors_to_dict(colors: ColorConfig) -> dict:
    return _drop_none({"icon": colors.icon, "text": colors.text, "background": colors.background})


def config_to_dict(cfg: Config) -> dict:
    rollout = {
        "scan_depth_days": cfg.rollout.scan_depth_days,
        "max_files": cfg.rollout.max_files,
    }
    if cfg.rollout.path_override is not None:
        rollout["path_override"] = str(cfg.rollout.path_override)
    return {
        "theme": cfg.theme,
        "style": style_to_dict(cfg.style),
        "rollout": rollout,
        "segments": [
            {
                "id": seg.id.value,
                "enabled": seg.enabled,
                "bold": seg.bold,
                "icon": icon_to_dict(seg.icon),
                "colors": colors_to_dict(seg.colors),
                "options": dict(seg.options),
            }
            for seg in cfg.segments
        ],
    }


def dumps(cfg: Config) -> str:
    return tomli_w.dumps(config_to_dict(cfg))


# ── Store ─────────────────────────────────────────────────────────────


def atomic_write(path: Path, text: str):
    """Write *text* to *path* via a temp file and rename."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise EnvironmentFailure(f"failed to create dir: {path.parent}: {e}") from e
    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", delete=False
        ) as f:
            tmp_name = f.name
            f.write(text)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise EnvironmentFailure(f"failed to write {path}: {e}") from e


def load_from_path(path: Path) -> Config:
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise EnvironmentFailure(f"failed to read config: {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"failed to parse config: {path}: {e}") from e
    try:
        cfg = config_from_dict(data)
        cfg.validate()
    except ConfigError as e:
        raise ConfigError(f"{path}: {e}") from e
    return cfg


def load(path: Optional[Path] = None) -> Config:
    path = path or config_path()
    if not path.exists():
        log.debug("no config at %s, using defaults", path)
        return Config()
    return load_from_path(path)


def save(cfg: Config, path: Optional[Path] = None) -> Path:
    path = path or config_path()
    cfg.validate()
    atomic_write(path, dumps(cfg))
    log.debug("saved config to %s", path)
    return path


def init(path: Optional[Path] = None) -> bool:
    """Create the default config file. Returns False if it already existed."""
    path = path or config_path()
    if path.exists():
        return False
    save(Config(), path)
    return True
