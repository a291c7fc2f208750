import logging
import pytest
from guided_cookbook.catalog import NotFoundError
from guided_cookbook.formatter import overall_progress_percent
from guided_cookbook.models import Ingredient, InstructionStep, Recipe
from guided_cookbook.session import CookSessionMachine, InvalidRecipeError, SessionState


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeTickSource:
    def __init__(self, machine):
        self.machine = machine
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True


def _recording_factory(sources: list):
    def factory(machine):
        source = FakeTickSource(machine)
        sources.append(source)
        return source

    return factory


def _make_recipe(*minutes: int, recipe_id: str = "soup") -> Recipe:
    steps = [InstructionStep(description=f"step {i}", duration_minutes=m, ingredient_ids=["x"]) for i, m in enumerate(minutes)]
    salt = Ingredient(id="x", name="salt", quantity=1)
    return Recipe(id=recipe_id, title="Tomato Soup", ingredients=[salt], steps=steps)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def machine(clock):
    return CookSessionMachine(clock=clock)


def _running(machine, recipe):
    machine.start(recipe)
    machine.toggle_run()
    return machine


def test_new_machine_is_idle(machine):
    assert machine.state is SessionState.IDLE
    assert machine.session is None
    assert machine.recipe is None


def test_start_seeds_first_step(machine):
    recipe = _make_recipe(3, 5)
    machine.start(recipe)
    session = machine.session
    assert machine.state is SessionState.PAUSED
    assert session.recipe_id == "soup"
    assert session.current_step_index == 0
    assert session.remaining_seconds == 180
    assert session.is_running is False
    assert machine.recipe is recipe


def test_scenario_two_steps_run_to_completion(machine):
    _running(machine, _make_recipe(1, 2))
    assert machine.session.remaining_seconds == 60

    machine.tick(60)
    session = machine.session
    assert session.current_step_index == 1
    assert session.remaining_seconds == 120
    assert session.is_running is True
    assert machine.state is SessionState.RUNNING

    machine.tick(120)
    session = machine.session
    assert machine.state is SessionState.COMPLETED
    assert session.remaining_seconds == 0
    assert session.is_running is False


def test_start_without_steps_raises(machine):
    with pytest.raises(InvalidRecipeError):
        machine.start(Recipe(title="Empty"))
    assert machine.state is SessionState.IDLE


def test_start_with_zero_duration_step_raises(machine):
    with pytest.raises(InvalidRecipeError):
        machine.start(_make_recipe(1, 0))


def test_start_by_id(machine):
    recipes = [_make_recipe(1, recipe_id="a"), _make_recipe(4, recipe_id="b")]
    machine.start_by_id("b", recipes)
    assert machine.session.recipe_id == "b"
    assert machine.session.remaining_seconds == 240


def test_start_by_unknown_id_raises_not_found(machine):
    with pytest.raises(NotFoundError):
        machine.start_by_id("ghost", [_make_recipe(1)])
    assert machine.state is SessionState.IDLE


def test_toggle_run_flips_between_running_and_paused(machine):
    machine.start(_make_recipe(1))
    machine.toggle_run()
    assert machine.state is SessionState.RUNNING
    machine.toggle_run()
    assert machine.state is SessionState.PAUSED


def test_toggle_run_is_noop_when_idle(machine):
    machine.toggle_run()
    assert machine.state is SessionState.IDLE


def test_toggle_run_is_noop_when_completed(machine):
    _running(machine, _make_recipe(1))
    machine.tick(60)
    machine.toggle_run()
    assert machine.state is SessionState.COMPLETED
    assert machine.session.is_running is False


def test_tick_counts_down(machine):
    _running(machine, _make_recipe(2))
    machine.tick(1)
    machine.tick(3)
    assert machine.session.remaining_seconds == 116
    assert machine.session.current_step_index == 0


def test_tick_zero_changes_nothing(machine):
    _running(machine, _make_recipe(1, 2))
    machine.tick(15)
    before = machine.session
    for _ in range(10):
        machine.tick(0)
    assert machine.session == before


def test_tick_while_paused_changes_nothing(machine):
    machine.start(_make_recipe(1, 2))
    before = machine.session
    for elapsed in (1, 30, 60, 500):
        machine.tick(elapsed)
    assert machine.session == before


def test_tick_while_idle_is_noop(machine):
    machine.tick(10)
    assert machine.state is SessionState.IDLE


def test_negative_tick_rejected(machine):
    _running(machine, _make_recipe(1))
    with pytest.raises(ValueError):
        machine.tick(-1)


@pytest.mark.parametrize("chunks", [[60], [20, 30, 10], [1] * 60, [59, 0, 1]])
def test_ticks_summing_to_step_duration_advance_one_step(machine, chunks):
    _running(machine, _make_recipe(1, 3, 2))
    for elapsed in chunks:
        machine.tick(elapsed)
    assert machine.session.current_step_index == 1
    assert machine.session.remaining_seconds == 180


@pytest.mark.parametrize("chunks", [[120], [60, 60], [100, 19, 1]])
def test_ticks_summing_to_last_step_duration_complete(machine, chunks):
    _running(machine, _make_recipe(2))
    for elapsed in chunks:
        machine.tick(elapsed)
    assert machine.state is SessionState.COMPLETED


def test_overshoot_is_discarded(machine):
    _running(machine, _make_recipe(1, 2))
    machine.tick(90)
    assert machine.session.current_step_index == 1
    assert machine.session.remaining_seconds == 120


def test_only_one_step_advance_per_tick(machine):
    _running(machine, _make_recipe(1, 1, 1))
    machine.tick(500)
    assert machine.session.current_step_index == 1
    assert machine.state is SessionState.RUNNING


def test_overall_progress_is_monotonic_and_reaches_100(machine):
    recipe = _make_recipe(1, 2, 1)
    _running(machine, recipe)
    seen = [overall_progress_percent(machine.session, recipe)]
    while machine.state is SessionState.RUNNING:
        machine.tick(7)
        seen.append(overall_progress_percent(machine.session, recipe))
    assert seen == sorted(seen)
    assert seen[0] == 0
    assert seen[-1] == 100


def test_skip_moves_to_next_step_and_runs(machine):
    machine.start(_make_recipe(1, 2))
    machine.skip_to_next_step()
    session = machine.session
    assert session.current_step_index == 1
    assert session.remaining_seconds == 120
    assert session.is_running is True


def test_skip_resets_partial_progress(machine):
    _running(machine, _make_recipe(1, 2, 3))
    machine.tick(10)
    machine.skip_to_next_step()
    machine.tick(30)
    machine.skip_to_next_step()
    assert machine.session.current_step_index == 2
    assert machine.session.remaining_seconds == 180


def test_skip_on_last_step_completes(machine):
    _running(machine, _make_recipe(1))
    machine.skip_to_next_step()
    assert machine.state is SessionState.COMPLETED
    assert machine.session.is_running is False
    assert machine.session.remaining_seconds == 0


def test_skip_when_idle_is_noop(machine):
    machine.skip_to_next_step()
    assert machine.state is SessionState.IDLE


def test_reset_returns_to_idle(machine):
    _running(machine, _make_recipe(1))
    machine.reset()
    assert machine.state is SessionState.IDLE
    assert machine.session is None


def test_stop_is_reset(machine):
    _running(machine, _make_recipe(1))
    machine.stop()
    assert machine.state is SessionState.IDLE


def test_start_same_recipe_resets(machine):
    recipe = _make_recipe(1, 2)
    _running(machine, recipe)
    machine.tick(70)
    machine.start(recipe)
    assert machine.session.current_step_index == 0
    assert machine.session.remaining_seconds == 60
    assert machine.state is SessionState.PAUSED


def test_start_other_recipe_replaces_session(machine):
    _running(machine, _make_recipe(1, recipe_id="a"))
    machine.start(_make_recipe(5, recipe_id="b"))
    assert machine.session.recipe_id == "b"
    assert machine.session.remaining_seconds == 300


def test_session_property_is_a_snapshot(machine):
    _running(machine, _make_recipe(1))
    snapshot = machine.session
    snapshot.remaining_seconds = 1
    assert machine.session.remaining_seconds == 60


def test_sync_measures_whole_seconds_and_carries_fractions(machine, clock):
    _running(machine, _make_recipe(1))
    clock.now += 2.5
    machine.sync()
    assert machine.session.remaining_seconds == 58
    clock.now += 0.5
    machine.sync()
    assert machine.session.remaining_seconds == 57


def test_sync_tolerates_late_wakeups(machine, clock):
    _running(machine, _make_recipe(1, 1))
    clock.now += 45
    machine.sync()
    assert machine.session.remaining_seconds == 15


def test_sync_does_not_count_paused_time(machine, clock):
    _running(machine, _make_recipe(1))
    clock.now += 10
    machine.sync()
    machine.toggle_run()
    clock.now += 300
    machine.sync()
    machine.toggle_run()
    clock.now += 1
    machine.sync()
    assert machine.session.remaining_seconds == 49


def test_sync_with_explicit_now(machine, clock):
    _running(machine, _make_recipe(1))
    machine.sync(now=clock.now + 5)
    assert machine.session.remaining_seconds == 55


def test_observers_are_notified(machine):
    calls = []
    machine.subscribe(lambda m: calls.append(m.state))
    _running(machine, _make_recipe(1))
    machine.tick(60)
    assert calls == [SessionState.PAUSED, SessionState.RUNNING, SessionState.COMPLETED]


def test_tick_zero_does_not_notify(machine):
    _running(machine, _make_recipe(1))
    calls = []
    machine.subscribe(lambda m: calls.append(m.state))
    machine.tick(0)
    assert calls == []


def test_unsubscribe(machine):
    calls = []
    unsubscribe = machine.subscribe(lambda m: calls.append(m.state))
    machine.start(_make_recipe(1))
    unsubscribe()
    unsubscribe()
    machine.toggle_run()
    assert calls == [SessionState.PAUSED]


def test_failing_observer_is_logged_and_others_still_run(machine, caplog):
    calls = []

    def broken(m):
        raise RuntimeError("boom")

    machine.subscribe(broken)
    machine.subscribe(lambda m: calls.append(m.state))
    with caplog.at_level(logging.ERROR, logger="guided_cookbook.session"):
        machine.start(_make_recipe(1))
    assert calls == [SessionState.PAUSED]
    assert any("observer" in msg for msg in caplog.messages)


def test_tick_source_started_with_session(clock):
    sources = []
    machine = CookSessionMachine(tick_source_factory=_recording_factory(sources), clock=clock)
    machine.start(_make_recipe(1))
    assert len(sources) == 1
    assert sources[0].started is True
    assert sources[0].machine is machine
    assert machine.has_tick_source


def test_new_start_stops_previous_tick_source(clock):
    sources = []
    machine = CookSessionMachine(tick_source_factory=_recording_factory(sources), clock=clock)
    machine.start(_make_recipe(1, recipe_id="a"))
    machine.start(_make_recipe(1, recipe_id="b"))
    assert sources[0].stopped is True
    assert sources[1].stopped is False


def test_reset_stops_tick_source(clock):
    sources = []
    machine = CookSessionMachine(tick_source_factory=_recording_factory(sources), clock=clock)
    machine.start(_make_recipe(1))
    machine.reset()
    assert sources[0].stopped is True
    assert not machine.has_tick_source


def test_completion_stops_tick_source(clock):
    sources = []
    machine = CookSessionMachine(tick_source_factory=_recording_factory(sources), clock=clock)
    _running(machine, _make_recipe(1))
    machine.tick(60)
    assert sources[0].stopped is True


def test_pause_keeps_tick_source(clock):
    sources = []
    machine = CookSessionMachine(tick_source_factory=_recording_factory(sources), clock=clock)
    _running(machine, _make_recipe(1))
    machine.toggle_run()
    assert sources[0].stopped is False
