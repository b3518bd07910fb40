from __future__ import annotations

import argparse
import sys
from pathlib import Path

from projsynth.config import DEFAULT_RC_FILE, build_project, load_project_definition
from projsynth.errors import SynthError, TaskFailedError
from projsynth.logger import Logger, LogLevel
from projsynth.project import Project
from projsynth.runtime import TaskRuntime
from projsynth.shell import ShellExecutor, SubprocessShellExecutor
from projsynth.tasks import Shell


def _eprint(*args: object) -> None:
    print(*args, file=sys.stderr)


def _logger(args: argparse.Namespace) -> Logger:
    level = LogLevel.INFO
    if getattr(args, "verbose", False):
        level = LogLevel.DEBUG
    elif getattr(args, "quiet", False):
        level = LogLevel.WARN
    return Logger(level=level)


def _make_executor(*, logger: Logger, capture: bool = True, timeout_seconds: float | None = None) -> ShellExecutor:
    return SubprocessShellExecutor(logger=logger, capture=capture, timeout_seconds=timeout_seconds)


def _load_project(
    args: argparse.Namespace,
    *,
    dry_run: bool = False,
    capture: bool = True,
    timeout_seconds: float | None = None,
) -> Project:
    rc_path = Path(args.rc)
    if not rc_path.exists():
        raise SynthError(f"Config file not found: {rc_path}", details={"path": str(rc_path)})
    definition = load_project_definition(rc_path)
    logger = _logger(args)
    executor = _make_executor(logger=logger, capture=capture, timeout_seconds=timeout_seconds)
    return build_project(definition, logger=logger, executor=executor, dry_run=dry_run)


def cmd_synth(args: argparse.Namespace) -> int:
    project = _load_project(args)
    changes = project.synth(post=not args.no_post)
    changed = {c.path for c in changes}
    for change in changes:
        print(f"{change.action}: {change.path}")
    for path in project.skipped_files:
        print(f"skipped: {path}")
    unchanged = [f.path for f in project.files if f.path not in changed and f.path not in project.skipped_files]
    for path in sorted(unchanged):
        print(f"unchanged: {path}")
    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    project = _load_project(args, dry_run=True)
    changes = project.synth(post=False)
    if not changes:
        print("Nothing to do.")
        return 0

    for change in changes:
        print(change.unified_diff().rstrip())

    if args.check:
        _eprint(f"Synth would change {len(changes)} file(s):")
        for change in changes:
            _eprint(f"- {change.action}: {change.path}")
        return 1
    return 0


def cmd_tasks(args: argparse.Namespace) -> int:
    project = _load_project(args)
    grouped = project.tasks.by_category()
    if not grouped:
        print("No tasks defined.")
        return 0
    for category, names in grouped.items():
        print(f"{category.value}:")
        for name in names:
            task = project.tasks.get(name)
            suffix = f"  {task.description}" if task.description else ""
            print(f"  {name}{suffix}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    project = _load_project(args)
    task = project.tasks.get(args.task)
    print(task.to_shell_command(Shell(args.shell)))
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    project = _load_project(args, capture=False, timeout_seconds=args.timeout)
    runtime = TaskRuntime(
        project.tasks,
        workdir=project.outdir,
        executor=project.executor,
        logger=project.logger,
        timeout_seconds=args.timeout,
    )
    try:
        runtime.run_task(args.task)
    except TaskFailedError as exc:
        _eprint(f"ERROR: {exc}")
        return exc.exit_code or 1
    return 0


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--rc", default=DEFAULT_RC_FILE, help=f"Project definition file (default: {DEFAULT_RC_FILE}).")
    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log debug output.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="projsynth")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_synth = sub.add_parser("synth", help="Synthesize managed files and run post-synthesis steps.")
    _add_common(p_synth)
    p_synth.add_argument(
        "--no-post",
        action="store_true",
        help="Skip post-synthesis steps (environment setup, dependency installs).",
    )
    p_synth.set_defaults(func=cmd_synth)

    p_diff = sub.add_parser("diff", help="Show what synth would change without writing.")
    _add_common(p_diff)
    p_diff.add_argument(
        "--check",
        action="store_true",
        help="Exit with status 1 if changes would be made.",
    )
    p_diff.set_defaults(func=cmd_diff)

    p_tasks = sub.add_parser("tasks", help="List tasks grouped by category.")
    _add_common(p_tasks)
    p_tasks.set_defaults(func=cmd_tasks)

    p_show = sub.add_parser("show", help="Print the shell command a task renders to.")
    p_show.add_argument("task")
    _add_common(p_show)
    p_show.add_argument(
        "--shell",
        choices=[s.value for s in Shell],
        default=Shell.POSIX.value,
        help="Shell dialect to render (default: posix).",
    )
    p_show.set_defaults(func=cmd_show)

    p_run = sub.add_parser("run", help="Run a task.")
    p_run.add_argument("task")
    _add_common(p_run)
    p_run.add_argument("--timeout", type=float, default=None, help="Per-command timeout in seconds.")
    p_run.set_defaults(func=cmd_run)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    try:
        return int(args.func(args))
    except SynthError as exc:
        _eprint(f"ERROR: {exc}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
