# tests/test_online_learner.py

from __future__ import annotations

import random

import pytest

from priority_forge.core.state import EngineState
from priority_forge.errors import InvalidRankError, TaskNotFoundError
from priority_forge.learning.learner_models import LearnerState, ReorderDirection
from priority_forge.learning.online_learner import OnlineLearner
from priority_forge.tasks.task_models import HeuristicWeights, TaskFactors

from .fakes import scored


def _view(*scores: float, factors: list[TaskFactors] | None = None):
    factors = factors or [TaskFactors() for _ in scores]
    return [scored(f"t{i}", s, f) for i, (s, f) in enumerate(zip(scores, factors, strict=True))]


@pytest.fixture()
def learner(clock) -> OnlineLearner:
    return OnlineLearner(EngineState(), clock=clock)


def test_promotion_generates_one_pair_per_passed_task(learner: OnlineLearner) -> None:
    view = _view(10, 20, 30, 40, 50)

    # Rank 4 -> rank 1 (1-based) is index 3 -> 0.
    result = learner.log_reorder("t3", 3, 0, view)

    assert result.pairs_generated == 3
    assert result.event.direction is ReorderDirection.PROMOTED
    assert result.event.passed_ids == ("t0", "t1", "t2")
    assert {p.demoted_id for p in result.event.preferences} == {"t0", "t1", "t2"}
    assert all(p.preferred_id == "t3" for p in result.event.preferences)
    assert result.event.preferences[0].score_diff == 40 - 10


def test_demotion_generates_pairs_for_tasks_moved_past() -> None:
    view = _view(10, 20, 30, 40, 50)
    prefs, passed = OnlineLearner.generate_preferences("t1", 1, 3, view)

    assert passed == ["t2", "t3"]
    assert [(p.preferred_id, p.demoted_id) for p in prefs] == [("t2", "t1"), ("t3", "t1")]
    assert prefs[0].score_diff == 30 - 20


def test_same_rank_is_a_no_op(learner: OnlineLearner) -> None:
    result = learner.log_reorder("t2", 2, 2, _view(1, 2, 3))

    assert result.pairs_generated == 0
    assert result.weight_update_applied is False
    assert learner.get_state().total_updates == 1


def test_agreeing_preferences_leave_weights_untouched(learner: OnlineLearner) -> None:
    # Dragged task already scores lower than everything it passes, by more than the margin.
    view = _view(50, 40, 30, -10)
    before = learner.weights

    result = learner.log_reorder("t3", 3, 0, view)

    assert all(p.score_diff <= -1 for p in result.event.preferences)
    assert result.weight_update_applied is False
    assert result.applied_delta == HeuristicWeights.zeros()
    assert learner.weights == before
    st = learner.get_state()
    assert st.cumulative_loss == 0
    assert st.momentum_buffer == HeuristicWeights.zeros()
    assert st.correct_predictions == 3


def test_disagreeing_preference_moves_weights_towards_preferred(learner: OnlineLearner) -> None:
    # t1 has a high blocking count but ranks below t0; the user pulls it up.
    factors = [TaskFactors(), TaskFactors(blocking_count=5)]
    view = _view(100, 150, factors=factors)
    before = learner.weights

    result = learner.log_reorder("t1", 1, 0, view)

    assert result.weight_update_applied is True
    # gradient = 5 on blocking, buffer = 5, delta = lr * 5 = 0.05
    assert result.applied_delta is not None
    assert result.applied_delta.blocking == pytest.approx(0.05)
    assert learner.weights.blocking == pytest.approx(before.blocking + 0.05)
    assert learner.weights.dependency == before.dependency
    assert learner.get_state().cumulative_loss == pytest.approx(51)


def test_momentum_accumulates_and_delta_is_clamped(clock) -> None:
    state = EngineState(learner=LearnerState(learning_rate=1.0, momentum=0.5, max_weight_change=0.5))
    learner = OnlineLearner(state, clock=clock)
    view = _view(100, 150, factors=[TaskFactors(), TaskFactors(time_sensitivity=10)])

    first = learner.log_reorder("t1", 1, 0, view)
    assert first.applied_delta is not None
    assert first.applied_delta.time_sensitive == 0.5
    assert learner.get_state().momentum_buffer.time_sensitive == 10

    learner.log_reorder("t1", 1, 0, view)
    assert learner.get_state().momentum_buffer.time_sensitive == 15
    assert learner.weights.time_sensitive == pytest.approx(8 + 0.5 + 0.5)


def test_weights_stay_within_bounds_under_random_feedback(clock) -> None:
    state = EngineState(learner=LearnerState(learning_rate=5.0, momentum=0.9, max_weight_change=5.0, max_weight=20.0))
    learner = OnlineLearner(state, clock=clock)
    rng = random.Random(2024)

    for _ in range(300):
        size = rng.randint(2, 8)
        factors = [
            TaskFactors(
                blocking_count=rng.randint(0, 10),
                cross_project_impact=rng.choice([0, 1]),
                time_sensitivity=rng.randint(0, 10),
                effort_value_ratio=rng.choice([3, 6, 9]),
                dependency_depth=rng.randint(0, 5),
            )
            for _ in range(size)
        ]
        view = _view(*sorted(rng.uniform(-200, 300) for _ in range(size)), factors=factors)
        src = rng.randrange(size)
        dst = rng.randrange(size)
        learner.log_reorder(f"t{src}", src, dst, view)

        st = learner.get_state()
        for value in learner.weights.as_dict().values():
            assert st.min_weight <= value <= st.max_weight


def test_disabled_learner_still_counts_metrics(clock) -> None:
    state = EngineState(learner=LearnerState(enabled=False))
    learner = OnlineLearner(state, clock=clock)
    before = learner.weights

    # t2 promoted over t0 (disagrees) and t1 (agrees).
    result = learner.log_reorder("t2", 2, 0, _view(10, 60, 50, factors=[TaskFactors(blocking_count=1)] * 3))

    assert result.weight_update_applied is False
    assert result.applied_delta is None
    assert learner.weights == before

    m = learner.metrics()
    assert m.enabled is False
    assert m.total_updates == 1
    assert m.total_pairs == 2
    assert m.correct_predictions == 1
    assert m.accuracy == 50.0
    assert m.cumulative_loss == 0


def test_reorder_errors(learner: OnlineLearner) -> None:
    view = _view(1, 2, 3)

    with pytest.raises(TaskNotFoundError):
        learner.log_reorder("ghost", 0, 1, view)
    with pytest.raises(InvalidRankError):
        learner.log_reorder("t0", 0, 3, view)
    with pytest.raises(InvalidRankError):
        learner.log_reorder("t0", -1, 0, view)

    assert learner.get_state().total_updates == 0


def test_selection_records_skipped_tasks(learner: OnlineLearner) -> None:
    view = _view(10, 20, 30)
    before = learner.weights

    event = learner.log_selection("t2", view)

    assert event.selected_rank == 2
    assert event.was_top_selected is False
    assert event.top_id == "t0"
    assert event.skipped_ids == ("t0", "t1")
    assert [p.score_diff for p in event.preferences] == [20, 10]
    assert learner.weights == before

    assert learner.log_selection("t0", view).was_top_selected is True
    with pytest.raises(TaskNotFoundError):
        learner.log_selection("ghost", view)


def test_update_config_validates_and_reclamps(learner: OnlineLearner) -> None:
    with pytest.raises(ValueError):
        learner.update_config(learning_rate=0)
    with pytest.raises(ValueError):
        learner.update_config(momentum=1.0)
    with pytest.raises(ValueError):
        learner.update_config(min_weight=10, max_weight=5)
    with pytest.raises(ValueError):
        learner.update_config(bogus=1)

    st = learner.update_config(max_weight=6.0, learning_rate=None)

    assert st.max_weight == 6.0
    assert st.learning_rate == 0.01
    assert learner.weights.blocking == 6.0
    assert learner.weights.time_sensitive == 6.0
    assert learner.weights.dependency == 2.0


def test_update_config_parses_enabled_strictly(learner: OnlineLearner) -> None:
    assert learner.update_config(enabled="false").enabled is False
    assert learner.update_config(enabled=" ON ").enabled is True
    assert learner.update_config(enabled=0).enabled is False
    assert learner.update_config(enabled=True).enabled is True

    for bad in ("maybe", "", 2, 0.5):
        with pytest.raises(ValueError):
            learner.update_config(enabled=bad)
    assert learner.get_state().enabled is True


def test_set_weights_clamps_explicit_values(learner: OnlineLearner) -> None:
    weights = learner.set_weights(blocking=500, dependency=0)

    assert weights.blocking == 50.0
    assert weights.dependency == 0.1
    with pytest.raises(ValueError):
        learner.set_weights(unknown=1)


def test_get_state_returns_a_copy(learner: OnlineLearner) -> None:
    st = learner.get_state()
    st.total_updates = 99
    assert learner.get_state().total_updates == 0


def test_feedback_history_is_bounded(clock) -> None:
    learner = OnlineLearner(EngineState(), clock=clock, max_events=2)
    view = _view(10, 20, 30)

    for task_id in ("t1", "t2", "t1"):
        learner.log_reorder(task_id, int(task_id[1]), 0, view)
    learner.log_selection("t2", view)

    assert [e.task_id for e in learner.reorder_events()] == ["t2", "t1"]
    assert [e.task_id for e in learner.reorder_events(limit=1)] == ["t1"]
    assert [e.selected_id for e in learner.selection_events()] == ["t2"]

    learner.clear_history()
    assert learner.reorder_events() == []
    assert learner.selection_events() == []
    assert learner.metrics().total_updates == 3

    with pytest.raises(ValueError):
        OnlineLearner(EngineState(), max_events=0)
