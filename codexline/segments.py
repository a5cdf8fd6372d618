"""Turn an effective config plus a StatusContext into renderable pieces.

One piece per enabled segment, in configured order. A segment whose value
cannot be computed from the context is left out entirely.
"""

from dataclasses import dataclass
from typing import List, Optional

from codexline.config import Config, SegmentConfig, SegmentId, StyleMode
from codexline.context import GitStatus, StatusContext, round_half_up

# Checked in order; first substring hit wins.
MODEL_LABELS = [
    ("claude-4-sonnet", "Sonnet 4"),
    ("claude-sonnet-4", "Sonnet 4"),
    ("claude-3-7-sonnet", "Sonnet 3.7"),
    ("gpt-5-codex", "gpt-5-codex"),
    ("gpt-5", "gpt-5"),
]

# (plain, glyph) per git state
GIT_CLEAN = ("ok", "✓")
GIT_DIRTY = ("*", "●")
GIT_CONFLICT = ("!", "⚠")


@dataclass(frozen=True)
class SegmentPiece:
    id: SegmentId
    icon: str
    value: str
    icon_color: Optional[str] = None
    text_color: Optional[str] = None
    background: Optional[str] = None
    bold: bool = False

    def plain_text(self) -> str:
        return f"{self.icon} {self.value}" if self.icon else self.value


# ── Value helpers ─────────────────────────────────────────────────────


def compact_tokens(value: int) -> str:
    if abs(value) >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if abs(value) >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(value)


def simplify_model_name(model: str) -> str:
    lower = model.lower()
    for needle, label in MODEL_LABELS:
        if needle in lower:
            return label
    return model


def shorten_id(value: str) -> str:
    return value[:8]


def icon_for_mode(mode: StyleMode, seg: SegmentConfig) -> str:
    if mode == StyleMode.PLAIN:
        return seg.icon.plain
    return seg.icon.nerd_font or seg.icon.plain


# ── Per-segment values ────────────────────────────────────────────────


def render_cwd(seg: SegmentConfig, ctx: StatusContext) -> str:
    if seg.option_bool("basename", True) and ctx.cwd.name:
        return ctx.cwd.name
    return str(ctx.cwd)


def render_git(mode: StyleMode, seg: SegmentConfig, git: GitStatus) -> str:
    glyph = 0 if mode == StyleMode.PLAIN else 1
    if git.conflicted > 0:
        symbol = GIT_CONFLICT[glyph]
    elif git.dirty:
        symbol = GIT_DIRTY[glyph]
    else:
        symbol = GIT_CLEAN[glyph]

    parts = [git.branch, symbol]
    if git.ahead is not None and git.ahead > 0:
        parts.append(f"↑{git.ahead}")
    if git.behind is not None and git.behind > 0:
        parts.append(f"↓{git.behind}")

    if seg.option_bool("detailed", False):
        for prefix, count in (("S", git.staged), ("U", git.unstaged),
                              ("N", git.untracked), ("C", git.conflicted)):
            if count > 0:
                parts.append(f"{prefix}{count}")
    return " ".join(parts)


def render_context(seg: SegmentConfig, ctx: StatusContext) -> Optional[str]:
    usage = ctx.usage
    if usage is None:
        return None
    if seg.option_str("mode", "remaining") == "used":
        return None if usage.used_percent is None else f"{usage.used_percent}% used"
    return None if usage.remaining_percent is None else f"{usage.remaining_percent}% left"


def render_tokens(ctx: StatusContext) -> Optional[str]:
    usage = ctx.usage
    if usage is None or usage.total_tokens <= 0:
        return None
    return (
        f"{compact_tokens(usage.input_tokens)} in "
        f"{compact_tokens(usage.output_tokens)} out "
        f"{compact_tokens(usage.total_tokens)} total"
    )


def render_limits(ctx: StatusContext) -> Optional[str]:
    limits = ctx.limits
    if limits is None:
        return None
    parts = []
    if limits.primary_used_percent is not None:
        parts.append(f"5h {round_half_up(limits.primary_used_percent)}%")
    if limits.secondary_used_percent is not None:
        parts.append(f"weekly {round_half_up(limits.secondary_used_percent)}%")
    return " ".join(parts) or None


def segment_value(mode: StyleMode, seg: SegmentConfig, ctx: StatusContext) -> Optional[str]:
    sid = seg.id
    if sid == SegmentId.MODEL:
        return simplify_model_name(ctx.model) if ctx.model else None
    if sid == SegmentId.CWD:
        return render_cwd(seg, ctx)
    if sid == SegmentId.GIT:
        return render_git(mode, seg, ctx.git) if ctx.git is not None else None
    if sid == SegmentId.CONTEXT:
        return render_context(seg, ctx)
    if sid == SegmentId.TOKENS:
        return render_tokens(ctx)
    if sid == SegmentId.LIMITS:
        return render_limits(ctx)
    if sid == SegmentId.SESSION:
        thread_id = ctx.session.thread_id if ctx.session else None
        return shorten_id(thread_id) if thread_id else None
    if sid == SegmentId.CODEX_VERSION:
        version = ctx.session.cli_version if ctx.session else None
        return f"v{version}" if version else None
    raise ValueError(f"unhandled segment id: {sid}")


# ── Builder ───────────────────────────────────────────────────────────


def build_segment(mode: StyleMode, seg: SegmentConfig, ctx: StatusContext) -> Optional[SegmentPiece]:
    value = segment_value(mode, seg, ctx)
    if value is None:
        return None
    return SegmentPiece(
        id=seg.id,
        icon=icon_for_mode(mode, seg),
        value=value,
        icon_color=seg.colors.icon,
        text_color=seg.colors.text,
        background=seg.colors.background,
        bold=seg.bold,
    )


def build_segments(cfg: Config, ctx: StatusContext) -> List[SegmentPiece]:
    pieces = []
    for seg in cfg.segments:
        if not seg.enabled:
            continue
        piece = build_segment(cfg.style.mode, seg, ctx)
        if piece is not None:
            pieces.append(piece)
    return pieces
