"""Rollout (session log) scanner.

Codex appends one JSON record per line to a rollout file per session. We pick
the newest rollout that yields any usable data and fold its records into a
:class:`RolloutInfo`. Older files are never merged in, even when they carry
fields the winner lacks.
"""

import datetime
import json
import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple

from codexline.context import RateLimitSnapshot, SessionMetaSnapshot, TokenUsageSnapshot

log = logging.getLogger(__name__)

ROLLOUT_EXT = ".jsonl"


@dataclass
class RolloutInfo:
    path: Optional[Path] = None
    model: Optional[str] = None
    usage: Optional[TokenUsageSnapshot] = None
    limits: Optional[RateLimitSnapshot] = None
    session: Optional[SessionMetaSnapshot] = None

    @property
    def empty(self) -> bool:
        return (self.model is None and self.usage is None
                and self.limits is None and self.session is None)


# ── Record helpers ────────────────────────────────────────────────────


def _get(obj: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return float(value)
    return None


def _reject_constant(name: str):
    raise ValueError(f"non-standard JSON constant {name}")


def apply_token_count(payload: dict, info: RolloutInfo):
    """Fold one token_count payload into *info* (last record wins)."""
    usage_src = payload["info"] if "info" in payload else payload
    totals = _get(usage_src, "total_token_usage")
    info.usage = TokenUsageSnapshot.from_totals(
        input_tokens=_as_int(_get(totals, "input_tokens")) or 0,
        output_tokens=_as_int(_get(totals, "output_tokens")) or 0,
        total_tokens=_as_int(_get(totals, "total_tokens")) or 0,
        context_window=_as_int(_get(usage_src, "model_context_window")),
    )

    primary = _as_float(_get(payload, "rate_limits", "primary", "used_percent"))
    secondary = _as_float(_get(payload, "rate_limits", "secondary", "used_percent"))
    if primary is not None or secondary is not None:
        info.limits = RateLimitSnapshot(
            primary_used_percent=primary,
            secondary_used_percent=secondary,
        )


def apply_record(record: dict, info: RolloutInfo):
    typ = record.get("type")
    payload = record.get("payload")
    if not isinstance(payload, dict):
        payload = {}

    if typ == "session_meta":
        provider = _as_str(payload.get("model_provider"))
        info.session = SessionMetaSnapshot(
            thread_id=_as_str(payload.get("id")),
            cli_version=_as_str(payload.get("cli_version")),
            model_provider=provider,
        )
        if info.model is None:
            info.model = provider
    elif typ == "turn_context":
        if info.model is None:
            info.model = _as_str(payload.get("model"))
    elif typ == "event_msg":
        if payload.get("type") == "token_count":
            apply_token_count(payload, info)
    elif typ == "token_count":
        apply_token_count(payload, info)


def parse_rollout_file(path: Path) -> RolloutInfo:
    info = RolloutInfo()
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for ln in f:
                try:
                    record = json.loads(ln, parse_constant=_reject_constant)
                except (ValueError, RecursionError):
                    continue
                if isinstance(record, dict):
                    apply_record(record, info)
    except OSError as e:
        log.debug("skipping unreadable rollout %s: %s", path, e)
        return RolloutInfo()

    if info.model is None and info.session is not None:
        info.model = info.session.model_provider
    return info


# ── Directory scan ────────────────────────────────────────────────────


def candidate_files(root: Path, scan_depth_days: int,
                    now: Optional[datetime.datetime] = None) -> List[Path]:
    """Rollout files under *root* modified within the window, newest first."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    cutoff = (now - datetime.timedelta(days=scan_depth_days)).timestamp()
    found: List[Tuple[float, Path]] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            if not name.lower().endswith(ROLLOUT_EXT):
                continue
            p = Path(dirpath) / name
            try:
                mtime = p.stat().st_mtime
            except OSError:
                continue
            if mtime < cutoff:
                continue
            found.append((mtime, p))
    found.sort(key=lambda item: item[0], reverse=True)
    return [p for _, p in found]


def scan(root: Path, scan_depth_days: int, max_files: int,
         now: Optional[datetime.datetime] = None) -> RolloutInfo:
    try:
        exists = root.is_dir()
    except OSError as e:
        log.debug("sessions dir %s is not accessible: %s", root, e)
        return RolloutInfo()
    if not exists:
        log.debug("sessions dir %s does not exist", root)
        return RolloutInfo()

    for path in candidate_files(root, scan_depth_days, now)[:max_files]:
        parsed = parse_rollout_file(path)
        if parsed.empty:
            continue
        parsed.path = path
        log.debug("using rollout %s", path)
        return parsed
    return RolloutInfo()
