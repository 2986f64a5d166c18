"""Tests for the phase calculator and workout configuration."""

import pytest

from calitimer.core.phase import (
    Configuration,
    ConfigurationError,
    Phase,
    WorkoutSnapshot,
    compute,
)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestConfiguration:
    """Configuration validates its values and is immutable."""

    def test_defaults(self) -> None:
        config = Configuration()
        assert config.sets == 15
        assert config.active_duration == 10_000
        assert config.rest_duration == 20_000

    def test_cycle_length(self) -> None:
        assert Configuration(sets=2, active_duration=1000, rest_duration=500).cycle_length == 1500

    def test_zero_rest_is_allowed(self) -> None:
        assert Configuration(rest_duration=0).rest_duration == 0

    def test_zero_sets_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            Configuration(sets=0)

    def test_zero_active_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            Configuration(active_duration=0)

    def test_negative_rest_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            Configuration(rest_duration=-1)

    def test_configuration_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            Configuration(sets=-3)

    def test_non_integer_raises_type_error(self) -> None:
        with pytest.raises(TypeError):
            Configuration(active_duration=1.5)  # type: ignore[arg-type]

    def test_bool_raises_type_error(self) -> None:
        with pytest.raises(TypeError):
            Configuration(sets=True)

    def test_is_frozen(self) -> None:
        config = Configuration()
        with pytest.raises(AttributeError):
            config.sets = 3  # type: ignore[misc]


class TestConfigurationReplace:
    """replace() merges partial fields into a new configuration."""

    def test_replace_single_field(self) -> None:
        config = Configuration().replace(sets=3)
        assert config == Configuration(sets=3, active_duration=10_000, rest_duration=20_000)

    def test_replace_leaves_original_untouched(self) -> None:
        original = Configuration()
        original.replace(rest_duration=0)
        assert original.rest_duration == 20_000

    def test_replace_validates(self) -> None:
        with pytest.raises(ConfigurationError):
            Configuration().replace(active_duration=0)

    def test_replace_unknown_field_raises(self) -> None:
        with pytest.raises(TypeError):
            Configuration().replace(laps=4)


# ---------------------------------------------------------------------------
# compute()
# ---------------------------------------------------------------------------

SCENARIO = Configuration(sets=2, active_duration=1000, rest_duration=500)


class TestComputeScenario:
    """Two sets of 1000 ms active and 500 ms rest."""

    def test_start(self) -> None:
        assert compute(0, SCENARIO) == WorkoutSnapshot(
            elapsed_time=0,
            phase=Phase.ACTIVE,
            remaining_in_phase=1000,
            set_number=1,
            complete=False,
        )

    def test_last_active_millisecond(self) -> None:
        snapshot = compute(999, SCENARIO)
        assert snapshot.phase == Phase.ACTIVE
        assert snapshot.set_number == 1
        assert snapshot.remaining_in_phase == 1
        assert snapshot.display_remaining == 1000
        assert not snapshot.complete

    def test_active_rest_boundary_belongs_to_rest(self) -> None:
        snapshot = compute(1000, SCENARIO)
        assert snapshot.phase == Phase.REST
        assert snapshot.set_number == 1
        assert snapshot.remaining_in_phase == 500

    def test_second_set_starts_active(self) -> None:
        snapshot = compute(1500, SCENARIO)
        assert snapshot.phase == Phase.ACTIVE
        assert snapshot.set_number == 2
        assert snapshot.remaining_in_phase == 1000

    def test_last_rest_millisecond_is_not_complete(self) -> None:
        snapshot = compute(2999, SCENARIO)
        assert snapshot.phase == Phase.REST
        assert snapshot.set_number == 2
        assert not snapshot.complete

    def test_complete_after_last_set(self) -> None:
        snapshot = compute(3000, SCENARIO)
        assert snapshot.set_number == 3
        assert snapshot.complete

    def test_elapsed_time_is_echoed(self) -> None:
        assert compute(1234, SCENARIO).elapsed_time == 1234


class TestComputeEdgeCases:
    def test_zero_elapsed_is_first_active(self) -> None:
        for config in (
            Configuration(),
            Configuration(sets=1, active_duration=1, rest_duration=0),
            Configuration(sets=7, active_duration=45_000, rest_duration=15_000),
        ):
            snapshot = compute(0, config)
            assert snapshot.set_number == 1
            assert snapshot.phase == Phase.ACTIVE
            assert snapshot.remaining_in_phase == config.active_duration

    def test_zero_rest_is_always_active(self) -> None:
        config = Configuration(sets=3, active_duration=1000, rest_duration=0)
        for elapsed in range(0, 3000, 50):
            assert compute(elapsed, config).phase == Phase.ACTIVE

    def test_zero_rest_still_advances_sets(self) -> None:
        config = Configuration(sets=3, active_duration=1000, rest_duration=0)
        assert compute(999, config).set_number == 1
        assert compute(1000, config).set_number == 2
        assert compute(1000, config).remaining_in_phase == 1000
        assert compute(3000, config).complete

    def test_negative_elapsed_raises(self) -> None:
        with pytest.raises(ValueError):
            compute(-1, SCENARIO)

    def test_is_deterministic(self) -> None:
        config = Configuration()
        for elapsed in (0, 1, 9_999, 10_000, 29_999, 30_000, 450_000):
            assert compute(elapsed, config) == compute(elapsed, config)


class TestComputeProperties:
    """Properties that hold across a sweep of elapsed times."""

    def test_completion_boundary(self) -> None:
        config = Configuration(sets=3, active_duration=700, rest_duration=300)
        for elapsed in range(0, 5000, 10):
            expected = elapsed // config.cycle_length + 1 > config.sets
            assert compute(elapsed, config).complete is expected

    def test_remaining_decreases_within_a_phase(self) -> None:
        config = Configuration(sets=2, active_duration=2500, rest_duration=1500)
        previous = compute(0, config)
        for elapsed in range(1, 8000):
            current = compute(elapsed, config)
            same_phase = (current.set_number, current.phase) == (
                previous.set_number,
                previous.phase,
            )
            if same_phase:
                assert current.remaining_in_phase == previous.remaining_in_phase - 1
                assert current.display_remaining <= previous.display_remaining
            previous = current

    def test_remaining_never_zero(self) -> None:
        config = Configuration(sets=2, active_duration=1000, rest_duration=500)
        for elapsed in range(0, 3000):
            snapshot = compute(elapsed, config)
            assert snapshot.remaining_in_phase > 0
            assert snapshot.display_remaining >= 1000


# ---------------------------------------------------------------------------
# display_remaining
# ---------------------------------------------------------------------------


class TestDisplayRemaining:
    """display_remaining rounds up to whole seconds."""

    @pytest.mark.parametrize(
        ("remaining", "expected"),
        [(1, 1000), (999, 1000), (1000, 1000), (1001, 2000), (9_400, 10_000)],
    )
    def test_ceiling(self, remaining: int, expected: int) -> None:
        snapshot = WorkoutSnapshot(
            elapsed_time=0,
            phase=Phase.ACTIVE,
            remaining_in_phase=remaining,
            set_number=1,
            complete=False,
        )
        assert snapshot.display_remaining == expected
