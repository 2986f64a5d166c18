"""Timer state machine — drives a workout through its sets and phases."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from calitimer.core.phase import Configuration, WorkoutSnapshot, compute
from calitimer.core.ticker import Ticker, TickerFactory

logger = logging.getLogger(__name__)


class MachineState(Enum):
    """Possible states of the timer."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass
class TimingState:
    """Running-time bookkeeping for a run; exists only outside IDLE."""

    elapsed_time: int = 0
    last_tick: int = 0


SnapshotCallback = Callable[[WorkoutSnapshot], None]
PhaseChangeCallback = Callable[[WorkoutSnapshot, WorkoutSnapshot], None]
StateCallback = Callable[[MachineState], None]


def _now_ms() -> int:
    """Return the monotonic clock in whole milliseconds."""
    return round(time.monotonic() * 1000)


class TimerStateMachine:
    """Interval timer over IDLE, RUNNING and PAUSED.

    Elapsed time is accumulated from the difference between successive clock
    reads, never from a tick count, so an irregular tick cadence cannot skew
    it.  The snapshot is always recomputed from the accumulated elapsed time
    and the configuration.

    Control calls made from a state where they do not apply are ignored.
    When a *ticker_factory* is given, a ticker is acquired on every entry into
    RUNNING and cancelled on every exit from it; without one, the driver is
    expected to call :meth:`tick` itself.
    """

    def __init__(
        self,
        config: Configuration | None = None,
        ticker_factory: TickerFactory | None = None,
    ) -> None:
        self._config: Configuration = config if config is not None else Configuration()
        self._ticker_factory = ticker_factory
        self._state: MachineState = MachineState.IDLE
        self._timing: Optional[TimingState] = None
        self._ticker: Optional[Ticker] = None
        self._snapshot: WorkoutSnapshot = compute(0, self._config)

        self._on_update: Optional[SnapshotCallback] = None
        self._on_phase_change: Optional[PhaseChangeCallback] = None
        self._on_state_change: Optional[StateCallback] = None
        self._on_complete: Optional[SnapshotCallback] = None

    # -- observers -----------------------------------------------------------

    def set_on_update(self, fn: Optional[SnapshotCallback]) -> None:
        """Register the observer called with every refreshed snapshot."""
        self._on_update = fn

    def set_on_phase_change(self, fn: Optional[PhaseChangeCallback]) -> None:
        """Register the observer called with ``(previous, current)`` on a phase or set change."""
        self._on_phase_change = fn

    def set_on_state_change(self, fn: Optional[StateCallback]) -> None:
        """Register the observer called with each new machine state."""
        self._on_state_change = fn

    def set_on_complete(self, fn: Optional[SnapshotCallback]) -> None:
        """Register the observer called with the completing snapshot before the auto-stop."""
        self._on_complete = fn

    # -- queries -------------------------------------------------------------

    def get_state(self) -> MachineState:
        """Return the current machine state."""
        return self._state

    def get_snapshot(self) -> WorkoutSnapshot:
        """Return the snapshot as of the last control operation or tick."""
        return self._snapshot

    def get_configuration(self) -> Configuration:
        """Return the current workout configuration."""
        return self._config

    def get_elapsed(self) -> int:
        """Return accumulated running time in milliseconds (0 when idle)."""
        return self._timing.elapsed_time if self._timing is not None else 0

    @property
    def is_idle(self) -> bool:
        """True when no run is in progress."""
        return self._state == MachineState.IDLE

    @property
    def is_running(self) -> bool:
        """True while ticks are advancing elapsed time."""
        return self._state == MachineState.RUNNING

    @property
    def is_paused(self) -> bool:
        """True while a run is frozen."""
        return self._state == MachineState.PAUSED

    # -- control -------------------------------------------------------------

    def configure(self, **changes: int) -> None:
        """Merge *changes* into the configuration and refresh the preview.

        Valid only from IDLE.  Invalid values raise and leave the previous
        configuration in place.
        """
        if self._state != MachineState.IDLE:
            self._ignore("configure")
            return
        self._config = self._config.replace(**changes)
        self._snapshot = compute(0, self._config)
        logger.debug("configured %s", self._config)
        self._emit_update()

    def start(self) -> None:
        """Begin a fresh run.  Valid only from IDLE."""
        if self._state != MachineState.IDLE:
            self._ignore("start")
            return
        self._acquire_ticker()
        self._timing = TimingState(elapsed_time=0, last_tick=_now_ms())
        self._snapshot = compute(0, self._config)
        self._transition(MachineState.RUNNING)
        self._emit_update()

    def toggle_start(self) -> None:
        """Start from IDLE; stop from RUNNING or PAUSED."""
        if self._state == MachineState.IDLE:
            self.start()
        else:
            self.stop()

    def toggle_pause(self) -> None:
        """Pause a running timer or resume a paused one."""
        if self._state == MachineState.RUNNING:
            self._release_ticker()
            self._transition(MachineState.PAUSED)
            self._emit_update()
        elif self._state == MachineState.PAUSED:
            timing = self._require_timing("toggle_pause")
            self._acquire_ticker()
            # Time spent paused is never added to elapsed time.
            timing.last_tick = _now_ms()
            self._transition(MachineState.RUNNING)
            self._emit_update()
        else:
            self._ignore("toggle_pause")

    def stop(self) -> None:
        """Abandon the run and return to IDLE.  Valid from RUNNING or PAUSED."""
        if self._state == MachineState.IDLE:
            self._ignore("stop")
            return
        self._release_ticker()
        self._timing = None
        self._snapshot = compute(0, self._config)
        self._transition(MachineState.IDLE)
        self._emit_update()

    def tick(self) -> None:
        """Advance elapsed time to now and recompute the snapshot.

        Stops the run automatically once the last set has finished.
        """
        if self._state != MachineState.RUNNING:
            self._ignore("tick")
            return
        timing = self._require_timing("tick")

        now = _now_ms()
        timing.elapsed_time += max(now - timing.last_tick, 0)
        timing.last_tick = now

        previous = self._snapshot
        current = self._snapshot = compute(timing.elapsed_time, self._config)

        if current.complete:
            logger.info("workout complete after %d ms", current.elapsed_time)
            try:
                if self._on_complete:
                    self._on_complete(current)
            finally:
                self.stop()
            return

        if (current.phase, current.set_number) != (previous.phase, previous.set_number):
            logger.info("set %d: %s", current.set_number, current.phase.value)
            if self._on_phase_change:
                self._on_phase_change(previous, current)
            # The observer may have stopped or paused the run.
            if self._state != MachineState.RUNNING:
                return

        self._emit_update()

    # -- private helpers -----------------------------------------------------

    def _acquire_ticker(self) -> None:
        """Obtain a ticker from the factory, if one was given."""
        if self._ticker_factory is not None:
            self._ticker = self._ticker_factory(self.tick)

    def _release_ticker(self) -> None:
        """Cancel and forget the current ticker, if any."""
        ticker, self._ticker = self._ticker, None
        if ticker is not None:
            ticker.cancel()

    def _transition(self, state: MachineState) -> None:
        """Enter *state* and notify the state observer."""
        logger.info("%s -> %s", self._state.value, state.value)
        self._state = state
        if self._on_state_change:
            self._on_state_change(state)

    def _emit_update(self) -> None:
        """Pass the current snapshot to the update observer."""
        if self._on_update:
            self._on_update(self._snapshot)

    def _require_timing(self, method: str) -> TimingState:
        """Return the timing state, raising ``RuntimeError`` if a run has none."""
        if self._timing is None:
            raise RuntimeError(f"{method}() found no timing state in {self._state.value} state")
        return self._timing

    def _ignore(self, method: str) -> None:
        """Log a control call that does not apply in the current state."""
        logger.debug("%s() ignored in %s state", method, self._state.value)
