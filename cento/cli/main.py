"""
CLI for running block programs on the robot.

Usage:
    uv run python -m cento.cli.main --help
    uv run python -m cento.cli.main validate programs/demo.json
    uv run python -m cento.cli.main run programs/demo.json --mock
    uv run python -m cento.cli.main run programs/demo.json --discover
    uv run python -m cento.cli.main save programs/demo.json --name demo
    uv run python -m cento.cli.main find-bot
"""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer

from ..core.config import ArmTimingMode, ChannelMode, DiscoveryMode, get_settings
from ..core.errors import CentoError, ProgramValidationError
from ..core.types import BlockKind, Program, RunOutcome, RunStatus
from ..discovery import HttpDiscovery, create_discovery
from ..execution import SequenceExecutor, TimingPolicy
from ..motion import MockMotionChannel, create_channel
from ..program import ProgramStore, count_blocks, display_label, load_program, validate


app = typer.Typer(
    name="cento",
    help="Run visual block programs on the Cento robot.",
    add_completion=False,
)

EXIT_CANCELLED = 130


@app.callback()
def _configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# ─────────────────────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────────────────────


def _get_store(store_dir: Path | None) -> ProgramStore:
    return ProgramStore(store_dir or get_settings().store.path)


def _load_source(source: str, store_dir: Path | None = None) -> Program:
    """Load a program from a JSON file, or from the store by id."""
    path = Path(source)
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            typer.echo(f"Error reading {path}: {e}", err=True)
            raise typer.Exit(1) from e
        try:
            return load_program(data)
        except ProgramValidationError as e:
            _print_violations(e.violations)
            raise typer.Exit(1) from e

    try:
        return _get_store(store_dir).load(source)
    except CentoError as e:
        typer.echo(f"Error: {source} is neither a file nor a saved program id ({e})", err=True)
        raise typer.Exit(1) from e


def _print_violations(violations) -> None:
    typer.echo(f"❌ {len(violations)} problem(s):", err=True)
    for v in violations:
        typer.echo(f"   {v}", err=True)


def format_tree(program: Program, indent: int = 0) -> list[str]:
    """Render a program as indented lines."""
    lines = []
    for block in program:
        pad = "  " * indent
        if block.kind == BlockKind.REPEAT:
            lines.append(f"{pad}Repeat x{int(block.params.get('times', 1))}")
            lines.extend(format_tree(block.children, indent + 1))
            continue
        args = ", ".join(f"{k}={v:g}" for k, v in block.params.items())
        label = display_label(block.action)
        lines.append(f"{pad}{label}({args})" if args else f"{pad}{label}")
    return lines


def _exit_code(outcome: RunOutcome) -> int:
    return {
        RunStatus.COMPLETED: 0,
        RunStatus.CANCELLED: EXIT_CANCELLED,
        RunStatus.FAILED: 1,
    }[outcome.status]


def _wait_for_outcome(executor: SequenceExecutor) -> RunOutcome:
    """Join the background run; Ctrl+C cancels it."""
    while True:
        try:
            outcome = executor.join(timeout=0.2)
        except KeyboardInterrupt:
            typer.echo("\n⏹  Cancelling...")
            executor.cancel()
            continue
        if outcome is not None:
            return outcome


# ─────────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────────


@app.command(name="validate")
def validate_cmd(
    source: Annotated[str, typer.Argument(help="Program JSON file or saved program id")],
    store_dir: Annotated[Path | None, typer.Option("--store", help="Program store directory")] = None,
):
    """Check a program and print its estimated run time."""
    program = _load_source(source, store_dir)
    result = validate(program)
    if not result.ok:
        _print_violations(result.violations)
        raise typer.Exit(1)

    timing = TimingPolicy(get_settings().timing)
    typer.echo(f"✅ Valid: {count_blocks(result.program)} blocks")
    typer.echo(f"   Estimated run time: {timing.estimate_s(result.program):.1f}s")


@app.command()
def run(
    source: Annotated[str, typer.Argument(help="Program JSON file or saved program id")],
    mock: Annotated[bool, typer.Option("--mock", help="Record commands instead of sending them")] = False,
    arm_mode: Annotated[ArmTimingMode | None, typer.Option("--arm-mode", help="Arm wait convention")] = None,
    discover: Annotated[bool, typer.Option("--discover", help="Locate the robot before connecting")] = False,
    time_scale: Annotated[float | None, typer.Option("--time-scale", help="Multiplier on every wait")] = None,
    store_dir: Annotated[Path | None, typer.Option("--store", help="Program store directory")] = None,
):
    """
    Run a program on the robot (Ctrl+C cancels and stops the wheels).

    Examples:
        run programs/demo.json --mock          # Dry run, prints commands
        run programs/demo.json --discover      # Find the robot, then run
        run 3f2a9c0d1e4b5a67 --arm-mode parametrized
    """
    settings = get_settings()
    program = _load_source(source, store_dir)

    timing_updates = {}
    if arm_mode is not None:
        timing_updates["arm_mode"] = arm_mode
    if time_scale is not None:
        timing_updates["time_scale"] = time_scale
    timing = TimingPolicy(settings.timing.model_copy(update=timing_updates))

    channel_settings = settings.channel
    if mock:
        channel_settings = channel_settings.model_copy(update={"mode": ChannelMode.MOCK})
    elif discover:
        info = create_discovery(settings.discovery).resolve(
            settings.discovery.service, settings.discovery.timeout_s
        )
        if info is None:
            typer.echo(f"❌ Robot '{settings.discovery.service}' not found", err=True)
            raise typer.Exit(1)
        typer.echo(f"🔍 Found {info.name or settings.discovery.service} at {info.address}:{info.port}")
        channel_settings = channel_settings.model_copy(
            update={"host": info.address, "port": info.port, "bind": False}
        )

    channel = create_channel(channel_settings)
    if not channel.connect():
        typer.echo(f"❌ Could not open motion channel on {channel_settings.endpoint}", err=True)
        raise typer.Exit(1)

    typer.echo(f"\nChannel: {channel_settings.mode.value}")
    typer.echo(f"Estimated run time: {timing.estimate_s(program):.1f}s")
    typer.echo("Press Ctrl+C to stop\n")

    executor = SequenceExecutor(channel, timing)
    try:
        executor.start(program)
        outcome = _wait_for_outcome(executor)
    except CentoError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1) from e
    finally:
        if isinstance(channel, MockMotionChannel):
            _print_commands(channel)
        channel.disconnect()

    icon = {RunStatus.COMPLETED: "✅", RunStatus.CANCELLED: "⏹ ", RunStatus.FAILED: "❌"}[outcome.status]
    typer.echo(f"\n{icon} {outcome}")
    raise typer.Exit(_exit_code(outcome))


def _print_commands(channel: MockMotionChannel) -> None:
    commands = channel.commands
    if not commands:
        return
    start = commands[0].timestamp
    typer.echo(f"\nRecorded {len(commands)} command(s):")
    for command in commands:
        typer.echo(f"  {command.timestamp - start:7.2f}s  {command}")


@app.command()
def save(
    source: Annotated[Path, typer.Argument(help="Program JSON file")],
    name: Annotated[str | None, typer.Option("--name", "-n", help="Display name")] = None,
    store_dir: Annotated[Path | None, typer.Option("--store", help="Program store directory")] = None,
):
    """Validate a program and save it to the store."""
    program = _load_source(str(source), store_dir)
    result = validate(program)
    if not result.ok:
        _print_violations(result.violations)
        raise typer.Exit(1)

    try:
        ack = _get_store(store_dir).save(program, name=name)
    except CentoError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1) from e

    status = "Saved" if ack.created else "Already saved"
    typer.echo(f"💾 {status}: {ack.id} ({ack.created_at.isoformat()})")


@app.command()
def list_programs(
    store_dir: Annotated[Path | None, typer.Option("--store", help="Program store directory")] = None,
):
    """List saved programs, oldest first."""
    try:
        records = _get_store(store_dir).list()
    except CentoError as e:
        typer.echo(f"Error loading programs: {e}", err=True)
        raise typer.Exit(1) from e

    if not records:
        typer.echo("No saved programs.")
        return

    typer.echo(f"\n{'ID':<18} {'Created':<20} {'Blocks':>6}  Name")
    typer.echo("-" * 60)
    for record in records:
        created = record.created_at.strftime("%Y-%m-%d %H:%M:%S")
        typer.echo(f"{record.id:<18} {created:<20} {len(record.blocks):>6}  {record.name}")


@app.command()
def show(
    program_id: Annotated[str, typer.Argument(help="Saved program id")],
    store_dir: Annotated[Path | None, typer.Option("--store", help="Program store directory")] = None,
):
    """Print a saved program as a tree."""
    store = _get_store(store_dir)
    try:
        record = store.get(program_id)
        program = store.load(program_id)
    except CentoError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(f"\n{record.id}  {record.name}")
    typer.echo(f"Created: {record.created_at.isoformat()}\n")
    for line in format_tree(program):
        typer.echo(f"  {line}")


@app.command()
def find_bot(
    url: Annotated[str | None, typer.Option("--url", help="find-bot endpoint (HTTP mode)")] = None,
    timeout: Annotated[float | None, typer.Option("--timeout", "-t", help="Seconds to wait")] = None,
):
    """Locate the robot on the network."""
    settings = get_settings().discovery
    if url:
        discovery = HttpDiscovery(url)
    else:
        discovery = create_discovery(settings)
    info = discovery.resolve(settings.service, timeout if timeout is not None else settings.timeout_s)

    if info is None:
        hint = "" if url or settings.mode == DiscoveryMode.HTTP else " (set DISCOVERY_HOST or use --url)"
        typer.echo(f"❌ Robot '{settings.service}' not found{hint}", err=True)
        raise typer.Exit(1)

    typer.echo(f"🤖 {info.name or settings.service}")
    typer.echo(f"   Host: {info.host}")
    typer.echo(f"   Port: {info.port}")
    if info.addresses:
        typer.echo(f"   Addresses: {', '.join(info.addresses)}")


SELFTEST_PROGRAM = [
    {"kind": "wheel", "action": "MoveForward", "params": {"duration": 2}},
    {"kind": "wheel", "action": "TurnLeft", "params": {"angle": 90}},
    {"kind": "arm", "action": "Hi"},
    {"kind": "repeat", "action": "Repeat", "params": {"times": 2}, "children": [
        {"kind": "wheel", "action": "MoveBackward", "params": {"duration": 1}},
        {"kind": "delay", "action": "Delay", "params": {"seconds": 1}},
    ]},
]


@app.command()
def selftest(
    time_scale: Annotated[float, typer.Option("--time-scale", help="Multiplier on every wait")] = 0.01,
):
    """Dry-run a built-in program on the mock channel and check the commands."""
    program = load_program(SELFTEST_PROGRAM)
    timing = TimingPolicy(get_settings().timing.model_copy(update={"time_scale": time_scale}))
    channel = MockMotionChannel()
    channel.connect()

    outcome = SequenceExecutor(channel, timing).run(program)
    commands = channel.commands
    channel.disconnect()

    turn_publishes = timing.turn_publish_count(program[1])
    checks = [
        ("run completed", outcome.completed),
        ("first command drives forward", bool(commands) and commands[0].linear.x > 0),
        ("every wheel motion ends with a stop", len(channel.stops) == 4),
        ("turn republished on schedule", sum(1 for c in commands if c.angular.z > 0) == turn_publishes),
        ("one gesture", channel.gestures == ["Hi"]),
        ("every command counted", outcome.commands_published == len(commands)),
    ]

    failed = 0
    for label, passed in checks:
        typer.echo(f"{'✅' if passed else '❌'} {label}")
        failed += 0 if passed else 1

    typer.echo(f"\n{outcome}")
    if failed:
        raise typer.Exit(1)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
