"""Preset layouts applied by ``--quick-config`` and ``--enhance``."""

from typing import Iterable, List

from codexline.config import Config, SegmentId, default_segment_for

QUICK_ORDER = [
    SegmentId.MODEL,
    SegmentId.CWD,
    SegmentId.GIT,
    SegmentId.CONTEXT,
    SegmentId.TOKENS,
    SegmentId.LIMITS,
    SegmentId.SESSION,
    SegmentId.CODEX_VERSION,
]

QUICK_ENABLED = {SegmentId.MODEL, SegmentId.CWD, SegmentId.GIT, SegmentId.CONTEXT, SegmentId.TOKENS}

OBSERVABILITY = [
    SegmentId.CONTEXT,
    SegmentId.TOKENS,
    SegmentId.LIMITS,
    SegmentId.SESSION,
    SegmentId.CODEX_VERSION,
]

ENHANCEMENTS = ["git", "observability"]


def ensure_segment(cfg: Config, seg_id: SegmentId):
    if cfg.segment(seg_id) is None:
        cfg.segments.append(default_segment_for(seg_id))


def reorder_segments(cfg: Config, order: Iterable[SegmentId]):
    """Listed ids first, in *order*; anything else keeps its relative place after."""
    remaining = list(cfg.segments)
    ordered = []
    for seg_id in order:
        for seg in remaining:
            if seg.id == seg_id:
                ordered.append(seg)
                remaining.remove(seg)
                break
    cfg.segments = ordered + remaining


def set_enabled(cfg: Config, seg_id: SegmentId, enabled: bool):
    seg = cfg.segment(seg_id)
    if seg is not None:
        seg.enabled = enabled


def set_option(cfg: Config, seg_id: SegmentId, key: str, value):
    seg = cfg.segment(seg_id)
    if seg is not None:
        seg.options[key] = value


def apply_quick_config(cfg: Config):
    for seg_id in QUICK_ORDER:
        ensure_segment(cfg, seg_id)
    reorder_segments(cfg, QUICK_ORDER)
    for seg in cfg.segments:
        seg.enabled = seg.id in QUICK_ENABLED
    set_option(cfg, SegmentId.CWD, "basename", True)
    set_option(cfg, SegmentId.GIT, "detailed", False)
    set_option(cfg, SegmentId.CONTEXT, "mode", "used")


def apply_enhancement(cfg: Config, name: str):
    if name == "git":
        ensure_segment(cfg, SegmentId.GIT)
        set_enabled(cfg, SegmentId.GIT, True)
        set_option(cfg, SegmentId.GIT, "detailed", True)
    elif name == "observability":
        for seg_id in OBSERVABILITY:
            ensure_segment(cfg, seg_id)
            set_enabled(cfg, seg_id, True)
        set_option(cfg, SegmentId.CONTEXT, "mode", "used")
        reorder_segments(cfg, QUICK_ORDER)
    else:
        raise ValueError(f"unknown enhancement: {name}")


def apply_enhancements(cfg: Config, names: Iterable[str]) -> List[str]:
    """Apply each distinct enhancement once, in first-seen order."""
    applied: List[str] = []
    for name in names:
        if name in applied:
            continue
        apply_enhancement(cfg, name)
        applied.append(name)
    return applied
