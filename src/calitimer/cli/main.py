"""CLI entry point for calitimer.

Uses Click to expose the ``calitimer`` command group.  ``run`` drives a
:class:`TimerStateMachine` on an asyncio loop and acts as its display and
notification side; ``preview`` queries the phase calculator directly.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Callable, TypeVar

import click

import calitimer
from calitimer.core.machine import MachineState, TimerStateMachine
from calitimer.core.phase import (
    DEFAULT_ACTIVE_DURATION,
    DEFAULT_REST_DURATION,
    DEFAULT_SETS,
    Configuration,
    ConfigurationError,
    Phase,
    WorkoutSnapshot,
    compute,
)
from calitimer.core.ticker import TICK_INTERVAL, loop_ticker

T = TypeVar("T")

_PHASE_NOTICES = {Phase.ACTIVE: "Begin", Phase.REST: "Rest"}


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting ``ConfigurationError`` to a CLI error.

    On ``ConfigurationError`` the message is printed to stderr and the
    process exits with code 1.
    """
    try:
        return action()
    except ConfigurationError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _to_ms(seconds: float) -> int:
    return round(seconds * 1000)


def _format_clock(milliseconds: int) -> str:
    """Format *milliseconds* as ``MM:SS``."""
    total = milliseconds // 1000
    return f"{total // 60:02d}:{total % 60:02d}"


def _status_line(snapshot: WorkoutSnapshot, config: Configuration) -> str:
    return (
        f"Set {snapshot.set_number}/{config.sets}  "
        f"{snapshot.phase.value.capitalize():<6}  "
        f"{_format_clock(snapshot.display_remaining)}  "
        f"elapsed {_format_clock(snapshot.elapsed_time)}"
    )


def _workout_options(fn: Callable[..., None]) -> Callable[..., None]:
    """Attach the shared --sets/--active/--rest options."""
    fn = click.option(
        "--rest",
        type=click.FloatRange(min=0),
        default=DEFAULT_REST_DURATION / 1000,
        show_default=True,
        envvar="CALITIMER_REST",
        help="Rest phase length in seconds.",
    )(fn)
    fn = click.option(
        "--active",
        type=click.FloatRange(min=0, min_open=True),
        default=DEFAULT_ACTIVE_DURATION / 1000,
        show_default=True,
        envvar="CALITIMER_ACTIVE",
        help="Active phase length in seconds.",
    )(fn)
    fn = click.option(
        "--sets",
        type=int,
        default=DEFAULT_SETS,
        show_default=True,
        envvar="CALITIMER_SETS",
        help="Number of sets.",
    )(fn)
    return fn


def _build_config(sets: int, active: float, rest: float) -> Configuration:
    return _run(
        lambda: Configuration(
            sets=sets, active_duration=_to_ms(active), rest_duration=_to_ms(rest)
        )
    )


async def _drive(machine: TimerStateMachine) -> None:
    """Run *machine* until it completes or is stopped."""
    finished = asyncio.Event()
    last_line = ""
    config = machine.get_configuration()

    def on_update(snapshot: WorkoutSnapshot) -> None:
        nonlocal last_line
        if not machine.is_running:
            return
        line = _status_line(snapshot, config)
        if line != last_line:
            last_line = line
            click.echo(line)

    def on_phase_change(previous: WorkoutSnapshot, current: WorkoutSnapshot) -> None:
        click.echo(_PHASE_NOTICES[current.phase])

    def on_complete(snapshot: WorkoutSnapshot) -> None:
        click.echo(
            f"Workout complete: {config.sets} sets in {_format_clock(snapshot.elapsed_time)}"
        )

    def on_state_change(state: MachineState) -> None:
        if state == MachineState.IDLE:
            finished.set()

    machine.set_on_update(on_update)
    machine.set_on_phase_change(on_phase_change)
    machine.set_on_complete(on_complete)
    machine.set_on_state_change(on_state_change)

    try:
        click.echo(_PHASE_NOTICES[Phase.ACTIVE])
        machine.start()
        await finished.wait()
    finally:
        machine.stop()


@click.group()
@click.version_option(version=calitimer.__version__, prog_name="calitimer")
def cli() -> None:
    """calitimer: an interval workout timer."""


@cli.command()
@_workout_options
@click.option(
    "--tick-interval",
    type=click.FloatRange(min=0, min_open=True),
    default=TICK_INTERVAL,
    show_default=True,
    envvar="CALITIMER_TICK_INTERVAL",
    help="Seconds between clock reads.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log state transitions to stderr.")
def run(sets: int, active: float, rest: float, tick_interval: float, verbose: bool) -> None:
    """Run a workout in the terminal.  Ctrl-C stops it."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    config = _build_config(sets, active, rest)
    machine = TimerStateMachine(config, ticker_factory=loop_ticker(tick_interval))
    try:
        asyncio.run(_drive(machine))
    except KeyboardInterrupt:
        click.echo("Stopped", err=True)
        sys.exit(130)


@cli.command()
@click.argument("elapsed", type=click.FloatRange(min=0))
@_workout_options
def preview(elapsed: float, sets: int, active: float, rest: float) -> None:
    """Show where a workout stands after ELAPSED seconds of running time."""
    config = _build_config(sets, active, rest)
    snapshot = compute(_to_ms(elapsed), config)
    if snapshot.complete:
        click.echo(f"Workout complete ({config.sets} sets)")
        return
    click.echo(_status_line(snapshot, config))
