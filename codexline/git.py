"""Git status probe.

Runs ``git status --porcelain=2 --branch`` once per call and folds its output
into a :class:`GitStatus`. Anything that goes wrong (no git binary, not a
repository, non-zero exit) yields ``None``.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from codexline.context import GitStatus

log = logging.getLogger(__name__)

STATUS_ARGS = ["status", "--porcelain=2", "--branch"]


def run_git(cwd: Path, args: List[str]) -> Optional[str]:
    try:
        r = subprocess.run(
            ["git", "-C", str(cwd), *args],
            capture_output=True,
            text=True,
            errors="replace",
        )
    except (OSError, subprocess.SubprocessError) as e:
        log.debug("git %s failed to start: %s", " ".join(args), e)
        return None
    if r.returncode != 0:
        log.debug("git %s exited %d in %s", " ".join(args), r.returncode, cwd)
        return None
    return r.stdout


def _signed(token: Optional[str], sign: str) -> Optional[int]:
    if not token or not token.startswith(sign):
        return None
    try:
        return int(token[1:])
    except ValueError:
        return None


def parse_porcelain(output: str) -> GitStatus:
    branch = "unknown"
    ahead = behind = None
    staged = unstaged = untracked = conflicted = 0

    for line in output.splitlines():
        if line.startswith("# branch.head "):
            branch = line[len("# branch.head "):].strip()
        elif line.startswith("# branch.ab "):
            parts = line[len("# branch.ab "):].split()
            ahead = _signed(parts[0] if parts else None, "+")
            behind = _signed(parts[1] if len(parts) > 1 else None, "-")
        elif line.startswith(("1 ", "2 ")):
            fields = line.split()
            xy = fields[1] if len(fields) > 1 else ".."
            if xy[:1] not in ("", "."):
                staged += 1
            if xy[1:2] not in ("", "."):
                unstaged += 1
        elif line.startswith("u "):
            conflicted += 1
        elif line.startswith("? "):
            untracked += 1

    return GitStatus(
        branch=branch,
        staged=staged,
        unstaged=unstaged,
        untracked=untracked,
        conflicted=conflicted,
        ahead=ahead,
        behind=behind,
    )


def probe(cwd: Path) -> Optional[GitStatus]:
    output = run_git(cwd, STATUS_ARGS)
    if output is None:
        return None
    return parse_porcelain(output)


def project_root(cwd: Path) -> Optional[Path]:
    output = run_git(cwd, ["rev-parse", "--show-toplevel"])
    if not output or not output.strip():
        return None
    return Path(output.strip())
