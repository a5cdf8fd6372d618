import datetime
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from codexline import git, rollout
from codexline.config import Config, codex_home
from codexline.context import StatusContext
from codexline.errors import EnvironmentFailure

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Collection:
    codex_home: Path
    sessions_dir: Path
    latest_rollout: Optional[Path]
    context: StatusContext


def sessions_dir_for(cfg: Config) -> Path:
    return cfg.rollout.path_override or codex_home() / "sessions"


def current_dir() -> Path:
    try:
        return Path(os.getcwd())
    except OSError as e:
        raise EnvironmentFailure(f"failed to get current directory: {e}") from e


def collect(cfg: Config, cwd: Optional[Path] = None,
            now: Optional[datetime.datetime] = None) -> Collection:
    """Gather git, rollout and process state into one StatusContext.

    The only failure is an undeterminable working directory; every data
    source that is unavailable simply leaves its field as ``None``.
    """
    cwd = cwd or current_dir()
    now = now or datetime.datetime.now(datetime.timezone.utc)

    git_status = git.probe(cwd)
    root = git.project_root(cwd) if git_status is not None else None

    sessions = sessions_dir_for(cfg)
    info = rollout.scan(sessions, cfg.rollout.scan_depth_days, cfg.rollout.max_files, now=now)
    log.debug("collected cwd=%s git=%s rollout=%s", cwd, git_status is not None, info.path)

    context = StatusContext(
        now=now,
        cwd=cwd,
        project_root=root,
        model=info.model,
        git=git_status,
        usage=info.usage,
        limits=info.limits,
        session=info.session,
    )
    return Collection(
        codex_home=codex_home(),
        sessions_dir=sessions,
        latest_rollout=info.path,
        context=context,
    )
