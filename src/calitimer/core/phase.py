"""Phase calculator — a pure mapping from elapsed time to a workout snapshot."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum

DEFAULT_SETS = 15
DEFAULT_ACTIVE_DURATION = 10_000
DEFAULT_REST_DURATION = 20_000

_DISPLAY_UNIT = 1000


class Phase(Enum):
    """Sub-state of a set."""

    ACTIVE = "active"
    REST = "rest"


class ConfigurationError(ValueError):
    """Raised when a configuration value is out of range."""


def _check_int(name: str, value: object) -> None:
    # bool is an int subclass but never a meaningful count or duration.
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")


@dataclass(frozen=True)
class Configuration:
    """Workout configuration; all durations are in milliseconds."""

    sets: int = DEFAULT_SETS
    active_duration: int = DEFAULT_ACTIVE_DURATION
    rest_duration: int = DEFAULT_REST_DURATION

    def __post_init__(self) -> None:
        _check_int("sets", self.sets)
        _check_int("active_duration", self.active_duration)
        _check_int("rest_duration", self.rest_duration)
        if self.sets < 1:
            raise ConfigurationError(f"sets must be at least 1, got {self.sets}")
        if self.active_duration < 1:
            raise ConfigurationError(
                f"active_duration must be at least 1 ms, got {self.active_duration}"
            )
        if self.rest_duration < 0:
            raise ConfigurationError(
                f"rest_duration must not be negative, got {self.rest_duration}"
            )

    @property
    def cycle_length(self) -> int:
        """Length of one set (active + rest) in milliseconds."""
        return self.active_duration + self.rest_duration

    def replace(self, **changes: int) -> Configuration:
        """Return a validated copy with *changes* merged in."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise TypeError(f"unknown configuration field(s): {', '.join(unknown)}")
        merged = {name: getattr(self, name) for name in known}
        merged.update(changes)
        return Configuration(**merged)


@dataclass(frozen=True)
class WorkoutSnapshot:
    """Derived view of a run at one instant.

    ``remaining_in_phase`` is exact; consumers that show whole seconds should
    read :attr:`display_remaining` instead.
    """

    elapsed_time: int
    phase: Phase
    remaining_in_phase: int
    set_number: int
    complete: bool

    @property
    def display_remaining(self) -> int:
        """Remaining time rounded up to the next whole second, in milliseconds."""
        return -(-self.remaining_in_phase // _DISPLAY_UNIT) * _DISPLAY_UNIT


def compute(elapsed_time: int, config: Configuration) -> WorkoutSnapshot:
    """Return the snapshot for *elapsed_time* milliseconds of running time.

    The active phase covers ``[0, active_duration)`` of each cycle, so the
    boundary instant belongs to the rest phase.  ``complete`` turns true as
    soon as the cycle would roll into set ``sets + 1``.
    """
    if elapsed_time < 0:
        raise ValueError(f"elapsed_time must not be negative, got {elapsed_time}")

    cycle_length = config.cycle_length
    completed_sets, position = divmod(elapsed_time, cycle_length)
    set_number = completed_sets + 1

    if position < config.active_duration:
        phase = Phase.ACTIVE
        remaining = config.active_duration - position
    else:
        phase = Phase.REST
        remaining = cycle_length - position

    return WorkoutSnapshot(
        elapsed_time=elapsed_time,
        phase=phase,
        remaining_in_phase=remaining,
        set_number=set_number,
        complete=set_number > config.sets,
    )
