"""Environment diagnostics for ``--doctor``.

Read-only apart from a transient probe file used to test that the Codex home
directory is writable.
"""

import datetime
import shutil
import uuid
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

from codexline.collect import Collection
from codexline.config import Config, config_path
from codexline.context import GitStatus

OK, WARN, FAIL = "ok", "warn", "fail"
_MARKS = {OK: "[OK]", WARN: "[WARN]", FAIL: "[FAIL]"}


@dataclass
class Check:
    name: str
    status: str
    detail: str


@dataclass
class DoctorReport:
    generated_at: str
    config_path: str
    config_exists: bool
    theme: str
    style_mode: str
    separator: str
    codex_home: str
    sessions_dir: str
    sessions_exists: bool
    latest_rollout: Optional[str]
    git: Optional[GitStatus]
    summary: str = ""
    checks: List[Check] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def is_dir_writable(path: Path) -> bool:
    probe = path / f".codexline_write_probe_{uuid.uuid4().hex[:8]}"
    try:
        probe.write_text("probe")
    except OSError:
        return False
    try:
        probe.unlink()
    except OSError:
        pass
    return True


def run_doctor(cfg: Config, collection: Collection, cfg_path: Optional[Path] = None,
               config_error: Optional[str] = None) -> DoctorReport:
    """Build the report. *config_error* is the load failure, if the config was unusable."""
    cfg_path = cfg_path or config_path()
    home = collection.codex_home
    sessions = collection.sessions_dir
    latest = str(collection.latest_rollout) if collection.latest_rollout else None

    report = DoctorReport(
        generated_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        config_path=str(cfg_path),
        config_exists=cfg_path.exists(),
        theme=cfg.theme,
        style_mode=cfg.style.mode.value,
        separator=cfg.style.separator,
        codex_home=str(home),
        sessions_dir=str(sessions),
        sessions_exists=sessions.is_dir(),
        latest_rollout=latest,
        git=collection.context.git,
    )

    def add(name, status, detail, suggestion=None):
        report.checks.append(Check(name, status, detail))
        if suggestion:
            report.suggestions.append(suggestion)

    if config_error:
        report.warnings.append(f"config file invalid, using defaults: {config_error}")
        add("config_file", FAIL, config_error,
            "Fix the config file, or delete it and run codexline --init")
    elif report.config_exists:
        add("config_file", OK, str(cfg_path))
    else:
        report.warnings.append("config file missing, run codexline --init")
        add("config_file", WARN, f"not found: {cfg_path}",
            "Run codexline --init to create a baseline config")

    if home.is_dir():
        add("codex_home", OK, str(home))
    else:
        add("codex_home", FAIL, f"missing: {home}",
            "Set CODEX_HOME or create the ~/.codex directory")

    if report.sessions_exists:
        add("sessions_dir", OK, str(sessions))
    else:
        report.warnings.append("sessions directory missing, run Codex once to initialize")
        add("sessions_dir", WARN, f"missing: {sessions}",
            "Run Codex once so the sessions directory is initialized")

    if latest:
        add("latest_rollout", OK, latest)
    else:
        report.warnings.append("no rollout data found in sessions directory")
        add("latest_rollout", WARN, "no rollout files found",
            "Use codexline --inspect rollout to debug rollout parsing")

    codex_bin = shutil.which("codex")
    if codex_bin:
        add("codex_binary", OK, codex_bin)
    else:
        add("codex_binary", WARN, "codex command not found in PATH",
            "Install the Codex CLI or add it to PATH")

    if home.is_dir() and is_dir_writable(home):
        add("codex_home_writable", OK, str(home))
    else:
        add("codex_home_writable", WARN, f"not writable: {home}",
            "Ensure the current user can write under CODEX_HOME")

    if collection.context.git is None:
        report.warnings.append("current directory is not a git repository")

    statuses = {c.status for c in report.checks}
    if FAIL in statuses:
        report.summary = "Diagnostics found blocking issues"
    elif WARN in statuses:
        report.summary = "Diagnostics completed with warnings"
    else:
        report.summary = "Diagnostics completed successfully"
    if not report.suggestions:
        report.suggestions.append("No blocking issues detected")
    return report


def render_text(report: DoctorReport) -> str:
    lines = [
        f"config: {report.config_path}",
        f"config_exists: {str(report.config_exists).lower()}",
        f"theme: {report.theme}",
        f"style_mode: {report.style_mode}",
        f"separator: {report.separator}",
        f"codex_home: {report.codex_home}",
        f"sessions_dir: {report.sessions_dir}",
        f"sessions_exists: {str(report.sessions_exists).lower()}",
        f"latest_rollout: {report.latest_rollout or '<none>'}",
    ]
    g = report.git
    if g is not None:
        lines.append(
            f"git: branch={g.branch} dirty={str(g.dirty).lower()} staged={g.staged} "
            f"unstaged={g.unstaged} untracked={g.untracked} conflicted={g.conflicted}"
        )
    else:
        lines.append("git: <not-a-repo>")

    lines += ["", f"Summary: {report.summary}", "Checks:"]
    for c in report.checks:
        lines.append(f"{_MARKS[c.status]} {c.name} - {c.detail}")
    if report.warnings:
        lines.append("warnings:")
        lines += [f"- {w}" for w in report.warnings]
    lines.append("Suggestions:")
    lines += [f"- {s}" for s in report.suggestions]
    return "\n".join(lines)
