"""Command-line interface for shellwatch."""

from __future__ import annotations

import argparse
import asyncio
import shlex
from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from shellwatch.config import Config, load_config
from shellwatch.detection.formatting import format_detection_results, format_terminal_screen
from shellwatch.errors import TmuxError, TmuxNotFoundError
from shellwatch.logging import setup_logging
from shellwatch.runtime import ShellRuntime

console = Console()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="shellwatch",
        description="Inspect and manage agent-owned tmux sessions",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--project-root",
        help="Project directory whose .shellwatch/config.yaml is merged in",
    )
    parser.add_argument(
        "--storage-dir",
        help="Override the session registry directory",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("check", help="Resolve and verify the tmux binary")

    sessions_parser = subparsers.add_parser(
        "sessions",
        help="List tracked tmux sessions",
    )
    sessions_parser.add_argument(
        "session_id",
        nargs="?",
        help="Conversation id (default: every stored conversation)",
    )

    cleanup_parser = subparsers.add_parser(
        "cleanup",
        help="Kill every tmux session tracked for a conversation",
    )
    cleanup_parser.add_argument("session_id", help="Conversation id")

    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="Stop tracking sessions tmux no longer knows about",
    )
    reconcile_parser.add_argument("session_id", help="Conversation id")

    detect_parser = subparsers.add_parser(
        "detect",
        help="Run stall and input-wait detection against a pane",
    )
    detect_parser.add_argument("label", help="tmux target (session or session:window.pane)")
    detect_parser.add_argument(
        "--samples",
        type=int,
        help="Number of pane captures (default: from config)",
    )
    detect_parser.add_argument(
        "--interval",
        type=int,
        help="Milliseconds between captures (default: from config)",
    )
    detect_parser.add_argument(
        "--screen",
        action="store_true",
        help="Also print the last captured screen",
    )

    run_parser = subparsers.add_parser(
        "run",
        help="Run a tmux command through the command tool",
    )
    run_parser.add_argument(
        "--session-id",
        help="Conversation id used for session tracking",
    )
    run_parser.add_argument(
        "tmux_args",
        nargs=argparse.REMAINDER,
        help="tmux arguments, as one quoted string or separate words",
    )

    keys_parser = subparsers.add_parser(
        "keys",
        help="Send keystrokes to a pane and show the screen afterwards",
    )
    keys_parser.add_argument("target", help="tmux target")
    keys_parser.add_argument("keystrokes", help="Keystrokes, e.g. 'y<Enter>' or '<Ctrl+C>'")

    return parser


def _load_config(parsed: argparse.Namespace) -> Config:
    config = load_config(project_root=parsed.project_root)
    if parsed.storage_dir:
        config.registry.storage_dir = parsed.storage_dir
    if parsed.verbose:
        config.logging.verbose = min(1 + parsed.verbose, 4)
    return config


def _join_tmux_args(args: Sequence[str]) -> str:
    args = list(args)
    if args and args[0] == "--":
        args = args[1:]
    if len(args) == 1:
        return args[0]
    return shlex.join(args)


def run_cli(args: Sequence[str], runtime: ShellRuntime | None = None) -> int:
    """Run the CLI with the given arguments.

    Args:
        args: Command-line arguments without the program name.
        runtime: Preconstructed runtime (tests); built from config otherwise.

    Returns:
        Process exit code.
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 1

    if runtime is None:
        config = _load_config(parsed)
        setup_logging(config.logging)
        runtime = ShellRuntime(config)

    if parsed.command == "check":
        return _cmd_check(runtime)
    elif parsed.command == "sessions":
        return _cmd_sessions(runtime, parsed.session_id)
    elif parsed.command == "cleanup":
        return asyncio.run(_cmd_cleanup(runtime, parsed.session_id))
    elif parsed.command == "reconcile":
        return asyncio.run(_cmd_reconcile(runtime, parsed.session_id))
    elif parsed.command == "detect":
        return asyncio.run(
            _cmd_detect(runtime, parsed.label, parsed.samples, parsed.interval, parsed.screen)
        )
    elif parsed.command == "run":
        return asyncio.run(_cmd_run(runtime, parsed.tmux_args, parsed.session_id))
    elif parsed.command == "keys":
        return asyncio.run(_cmd_keys(runtime, parsed.target, parsed.keystrokes))
    else:
        parser.print_help()
        return 1


def _cmd_check(runtime: ShellRuntime) -> int:
    """Report whether tmux is usable."""
    try:
        path = runtime.require_tmux()
    except TmuxNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return 1
    console.print(f"[green]tmux available:[/green] {path}")
    return 0


def _cmd_sessions(runtime: ShellRuntime, session_id: str | None) -> int:
    """Print tracked sessions for one or every stored conversation."""
    session_ids = [session_id] if session_id else runtime.registry.stored_session_ids()
    if not session_ids:
        console.print("[dim]No tracked sessions[/dim]")
        return 0

    table = Table(title="Tracked tmux Sessions")
    table.add_column("Conversation", style="bold")
    table.add_column("tmux Session")

    rows = 0
    for sid in session_ids:
        for name in runtime.registry.tracked_sessions(sid):
            table.add_row(sid, name)
            rows += 1

    if rows == 0:
        console.print("[dim]No tracked sessions[/dim]")
        return 0
    console.print(table)
    return 0


async def _cmd_cleanup(runtime: ShellRuntime, session_id: str) -> int:
    """Kill tracked sessions and delete the conversation's record."""
    names = await runtime.cleanup_all(session_id)
    if not names:
        console.print(f"[dim]Nothing tracked for {session_id}[/dim]")
        return 0
    for name in names:
        console.print(f"Killed [bold]{name}[/bold]")
    return 0


async def _cmd_reconcile(runtime: ShellRuntime, session_id: str) -> int:
    """Drop tracked names that tmux no longer lists."""
    try:
        stale = await runtime.reconcile(session_id)
    except TmuxError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return 1
    if not stale:
        console.print("[green]Registry matches tmux[/green]")
        return 0
    console.print(f"Dropped stale sessions: {', '.join(stale)}")
    return 0


async def _cmd_detect(
    runtime: ShellRuntime,
    label: str,
    samples: int | None,
    interval: int | None,
    show_screen: bool,
) -> int:
    """Run both detectors once and print their verdicts."""
    if samples is not None:
        runtime.config.stall.sample_count = samples
    if interval is not None:
        runtime.config.stall.interval_ms = interval

    try:
        stall = await runtime.check_output_stall(label)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return 2
    tty = await runtime.check_input_wait(label)

    if tty is None:
        console.print("[dim]TTY input-wait detection unavailable for this pane[/dim]")
    console.print(format_detection_results(tty, stall), markup=False, highlight=False)
    if show_screen:
        console.print(format_terminal_screen(stall.last_output), markup=False, highlight=False)
    return 0


async def _cmd_run(runtime: ShellRuntime, tmux_args: Sequence[str], session_id: str | None) -> int:
    """Run one tmux command through the command tool."""
    command = _join_tmux_args(tmux_args)
    result = await runtime.run_tmux(command, session_id=session_id)
    console.print(result.output, markup=False, highlight=False)
    return 0 if result.success else 1


async def _cmd_keys(runtime: ShellRuntime, target: str, keystrokes: str) -> int:
    """Send keystrokes and print the screen that follows."""
    result = await runtime.send_keystrokes(target, keystrokes)
    console.print(result.output, markup=False, highlight=False)
    return 0 if result.success else 1
