import datetime
import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (55.5 -> 56)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


# ── Snapshots ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class GitStatus:
    branch: str = "unknown"
    staged: int = 0
    unstaged: int = 0
    untracked: int = 0
    conflicted: int = 0
    ahead: Optional[int] = None
    behind: Optional[int] = None
    dirty: bool = field(init=False, default=False)

    def __post_init__(self):
        total = self.staged + self.unstaged + self.untracked + self.conflicted
        object.__setattr__(self, "dirty", total > 0)


@dataclass(frozen=True)
class TokenUsageSnapshot:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    model_context_window: Optional[int] = None
    used_percent: Optional[int] = None
    remaining_percent: Optional[int] = None

    @classmethod
    def from_totals(cls, input_tokens: int, output_tokens: int, total_tokens: int,
                    context_window: Optional[int]) -> "TokenUsageSnapshot":
        used = None
        if context_window is not None and context_window > 0:
            used = round_half_up(total_tokens / context_window * 100)
            used = max(0, min(100, used))
        return cls(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
            model_context_window=context_window,
            used_percent=used,
            remaining_percent=None if used is None else 100 - used,
        )


@dataclass(frozen=True)
class RateLimitSnapshot:
    primary_used_percent: Optional[float] = None
    secondary_used_percent: Optional[float] = None


@dataclass(frozen=True)
class SessionMetaSnapshot:
    thread_id: Optional[str] = None
    cli_version: Optional[str] = None
    model_provider: Optional[str] = None


# ── Per-invocation context ────────────────────────────────────────────


@dataclass(frozen=True)
class StatusContext:
    """Everything a render needs, collected once per invocation.

    A ``None`` field means the source had no data; it is never an error.
    """

    now: datetime.datetime
    cwd: Path
    project_root: Optional[Path] = None
    model: Optional[str] = None
    git: Optional[GitStatus] = None
    usage: Optional[TokenUsageSnapshot] = None
    limits: Optional[RateLimitSnapshot] = None
    session: Optional[SessionMetaSnapshot] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["now"] = self.now.isoformat()
        data["cwd"] = str(self.cwd)
        data["project_root"] = str(self.project_root) if self.project_root else None
        return data
