"""
codexline — status line for Codex sessions

Usage:
    codexline                              Main menu (TTY) or status line (piped)
    codexline --plain                      Status line without ANSI colors
    codexline --json                       Status line, pieces and context as JSON
    codexline --theme <name>               Render with a different theme
    codexline --print                      Print the effective config as TOML
    codexline --check                      Validate the config
    codexline --init                       Create config and built-in theme files
    codexline --config                     Open the configurator
    codexline --menu                       Open the main menu
    codexline --doctor [--json]            Environment diagnostics
    codexline --inspect [rollout|git|all]  Dump collected data as JSON
    codexline --quick-config               Apply the quick layout and save
    codexline --enhance <git|observability>  Apply a capability profile and save
"""

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, field
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from codexline import __version__
from codexline import config as config_store
from codexline.collect import Collection, collect
from codexline.config import Config, config_path, themes_dir
from codexline.doctor import render_text, run_doctor
from codexline.errors import CodexlineError, ConfigError
from codexline.profiles import ENHANCEMENTS, apply_enhancements, apply_quick_config
from codexline.render import render
from codexline.segments import build_segments
from codexline.themes import apply_theme, load_theme, write_builtin_themes_if_missing

log = logging.getLogger(__name__)

INSPECT_TARGETS = ("rollout", "git", "all")

# Flags that select something other than rendering the line.
ACTION_FLAGS = {
    "--print": "print",
    "--check": "check",
    "--init": "init",
    "--config": "configure",
    "--menu": "menu",
    "--doctor": "doctor",
    "--inspect": "inspect",
    "--quick-config": "profile",
    "--enhance": "profile",
}


@dataclass
class Options:
    action: Optional[str] = None
    plain: bool = False
    json: bool = False
    theme: Optional[str] = None
    verbose: bool = False
    help: bool = False
    version: bool = False
    inspect_target: str = "all"
    quick_config: bool = False
    enhancements: List[str] = field(default_factory=list)

    @property
    def wants_render(self) -> bool:
        return self.plain or self.json or self.theme is not None


def parse_args(args: List[str]) -> Options:
    opts = Options()

    def set_action(flag: str):
        action = ACTION_FLAGS[flag]
        if opts.action is not None and opts.action != action:
            raise CodexlineError(f"{flag} cannot be combined with another action")
        opts.action = action

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("-h", "--help"):
            opts.help = True
        elif arg in ("-V", "--version"):
            opts.version = True
        elif arg in ("-v", "--verbose"):
            opts.verbose = True
        elif arg == "--plain":
            opts.plain = True
        elif arg == "--json":
            opts.json = True
        elif arg == "--theme":
            if i + 1 >= len(args):
                raise CodexlineError("Usage: codexline --theme <name>")
            opts.theme = args[i + 1]
            i += 1
        elif arg == "--inspect":
            set_action(arg)
            if i + 1 < len(args) and not args[i + 1].startswith("-"):
                target = args[i + 1]
                if target not in INSPECT_TARGETS:
                    raise CodexlineError(
                        f"Unknown inspect target '{target}'. Available: {', '.join(INSPECT_TARGETS)}"
                    )
                opts.inspect_target = target
                i += 1
        elif arg == "--enhance":
            set_action(arg)
            if i + 1 >= len(args):
                raise CodexlineError(f"Usage: codexline --enhance <{'|'.join(ENHANCEMENTS)}>")
            name = args[i + 1]
            if name not in ENHANCEMENTS:
                raise CodexlineError(
                    f"Unknown enhancement '{name}'. Available: {', '.join(ENHANCEMENTS)}"
                )
            opts.enhancements.append(name)
            i += 1
        elif arg == "--quick-config":
            set_action(arg)
            opts.quick_config = True
        elif arg in ACTION_FLAGS:
            set_action(arg)
        else:
            raise CodexlineError(f"Unknown option: {arg}\nRun 'codexline --help' for usage information.")
        i += 1
    return opts


def setup_logging(verbose: bool = False):
    """Log records go to stderr; stdout is reserved for the line and JSON."""
    debug = verbose or os.environ.get("CODEXLINE_LOG", "").lower() == "debug"
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger = logging.getLogger("codexline")
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)


def _dump_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _effective_config(cfg: Config, theme: Optional[str]) -> Config:
    return apply_theme(cfg, theme or cfg.theme, themes_dir())


# ── Commands ──────────────────────────────────────────────────────────


def cmd_help():
    print("""\033[1;36m◆ codexline — status line for Codex sessions\033[0m

\033[1mUsage:\033[0m
  codexline                              Main menu (TTY) or status line (piped)
  codexline --plain                      Status line without ANSI colors
  codexline --json                       Status line, pieces and context as JSON
  codexline --theme <name>               Render with a different theme
  codexline --print                      Print the effective config as TOML
  codexline --check                      Validate the config
  codexline --init                       Create config and built-in theme files
  codexline --config                     Open the configurator
  codexline --menu                       Open the main menu
  codexline --doctor [--json]            Environment diagnostics
  codexline --inspect [rollout|git|all]  Dump collected data as JSON
  codexline --quick-config               Apply the quick layout and save
  codexline --enhance <name>             Apply git or observability profile and save
  codexline --verbose                    Debug logging on stderr
  codexline --version                    Show version
  codexline --help                       Show this help

\033[2mConfig: $CODEX_HOME/codexline/config.toml (CODEX_HOME defaults to ~/.codex)\033[0m""")


def cmd_version():
    print(f"codexline {__version__}")


def cmd_render(opts: Options):
    cfg = _effective_config(config_store.load(), opts.theme)
    ctx = collect(cfg).context
    pieces = build_segments(cfg, ctx)
    if opts.json:
        _dump_json({
            "line": render(cfg, pieces, plain=True),
            "segments": [asdict(p) for p in pieces],
            "context": ctx.to_dict(),
        })
        return
    print(render(cfg, pieces, plain=opts.plain))


def cmd_print(opts: Options):
    cfg = config_store.load()
    if opts.theme:
        cfg = _effective_config(cfg, opts.theme)
    print(config_store.dumps(cfg), end="")


def cmd_check(opts: Options):
    cfg = config_store.load()
    cfg.validate()
    load_theme(opts.theme or cfg.theme, themes_dir())
    print("configuration valid")


def cmd_init():
    path = config_path()
    if config_store.init(path):
        print(f"\033[1;36m◆\033[0m Created config: \033[32m{path}\033[0m")
    else:
        print(f"\033[1;36m◆\033[0m Config already exists: \033[2m{path}\033[0m")
    written = write_builtin_themes_if_missing(themes_dir())
    if written:
        print(f"\033[1;36m◆\033[0m Wrote {len(written)} theme file(s) to \033[32m{themes_dir()}\033[0m")


def cmd_configure():
    from codexline.tui import run_configurator

    path = config_path()
    saved = run_configurator(config_store.load(path), path)
    if saved is None:
        print("No changes saved.")
    else:
        print(f"\033[1;36m◆\033[0m Saved config: \033[32m{path}\033[0m (theme {saved.theme})")


def cmd_doctor(opts: Options):
    config_error = None
    try:
        cfg = config_store.load()
    except ConfigError as e:
        config_error = str(e)
        cfg = Config()
    report = run_doctor(cfg, collect(cfg), config_path(), config_error=config_error)
    if opts.json:
        _dump_json(report.to_dict())
    else:
        print(render_text(report))


def _inspect_data(collection: Collection, target: str) -> dict:
    ctx = collection.context
    data = {
        "target": target,
        "codex_home": str(collection.codex_home),
        "sessions_dir": str(collection.sessions_dir),
        "latest_rollout": str(collection.latest_rollout) if collection.latest_rollout else None,
    }
    full = ctx.to_dict()
    if target in ("rollout", "all"):
        for key in ("model", "usage", "limits", "session"):
            data[key] = full[key]
    if target in ("git", "all"):
        for key in ("cwd", "project_root", "git"):
            data[key] = full[key]
    return data


def cmd_inspect(opts: Options):
    collection = collect(config_store.load())
    _dump_json(_inspect_data(collection, opts.inspect_target))


def cmd_profile(opts: Options):
    cfg = config_store.load()
    if opts.quick_config:
        apply_quick_config(cfg)
        print("\033[1;36m◆\033[0m Applied quick layout")
    for name in apply_enhancements(cfg, opts.enhancements):
        print(f"\033[1;36m◆\033[0m Applied enhancement: \033[32m{name}\033[0m")
    path = config_store.save(cfg)
    print(f"\033[1;36m◆\033[0m Saved config: \033[32m{path}\033[0m")


def cmd_menu(opts: Options):
    from codexline.tui import run_main_menu

    choice = run_main_menu()
    log.debug("main menu choice: %s", choice)
    if choice is None:
        return
    if choice == "render":
        cmd_render(opts)
    elif choice == "configure":
        cmd_configure()
    elif choice == "init":
        cmd_init()
    elif choice == "check":
        cmd_check(opts)
    elif choice == "doctor":
        cmd_doctor(opts)


def _interactive() -> bool:
    return sys.stdout.isatty() and sys.stdin.isatty()


def run(opts: Options):
    action = opts.action
    if action is None:
        if not opts.wants_render and _interactive():
            cmd_menu(opts)
        else:
            cmd_render(opts)
    elif action == "print":
        cmd_print(opts)
    elif action == "check":
        cmd_check(opts)
    elif action == "init":
        cmd_init()
    elif action == "configure":
        cmd_configure()
    elif action == "menu":
        cmd_menu(opts)
    elif action == "doctor":
        cmd_doctor(opts)
    elif action == "inspect":
        cmd_inspect(opts)
    elif action == "profile":
        cmd_profile(opts)


def main(argv: Optional[List[str]] = None):
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        opts = parse_args(args)
        if opts.help:
            cmd_help()
            return
        if opts.version:
            cmd_version()
            return
        setup_logging(opts.verbose)
        run(opts)
    except CodexlineError as e:
        print(f"\033[31m{e}\033[0m", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
