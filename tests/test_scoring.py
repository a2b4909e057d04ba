# tests/test_scoring.py

from __future__ import annotations

import random
from datetime import datetime

import pytest

from priority_forge.ranking.scoring import (
    MAX_BLOCKING_COUNT,
    MAX_DEPENDENCY_DEPTH,
    compute_factors,
    compute_score,
    explain_score,
    score_all,
    time_sensitivity,
)
from priority_forge.tasks.task_models import HeuristicWeights, TaskFactors

from .fakes import due_in, make_task


def test_zero_factors_score_equals_base() -> None:
    assert compute_score(TaskFactors(), "P0") == 0
    assert compute_score(TaskFactors(), "P3") == 300
    assert compute_score(TaskFactors(), "P1", HeuristicWeights()) == 100


def test_increasing_blocking_count_never_raises_score() -> None:
    rng = random.Random(42)
    for _ in range(200):
        factors = TaskFactors(
            blocking_count=rng.randint(0, 9),
            cross_project_impact=rng.choice([0, 1]),
            time_sensitivity=rng.randint(0, 10),
            effort_value_ratio=rng.choice([3, 6, 9]),
            dependency_depth=rng.randint(0, 5),
        )
        weights = HeuristicWeights(*(rng.uniform(0, 50) for _ in range(5)))
        bumped = TaskFactors(**{**factors.as_dict(), "blocking_count": factors.blocking_count + 1})
        priority = rng.choice(["P0", "P1", "P2", "P3"])

        assert compute_score(bumped, priority, weights) <= compute_score(factors, priority, weights)


def test_dependency_chain_depths() -> None:
    a = make_task("A")
    b = make_task("B", dependencies=["A"])
    c = make_task("C", dependencies=["B"])
    tasks = [a, b, c]

    assert compute_factors(a, tasks).dependency_depth == 0
    assert compute_factors(b, tasks).dependency_depth == 1
    assert compute_factors(c, tasks).dependency_depth == 2


def test_dependency_cycle_is_finite_and_capped() -> None:
    a = make_task("A", dependencies=["B"])
    b = make_task("B", dependencies=["A"])
    tasks = [a, b]

    for task in tasks:
        depth = compute_factors(task, tasks).dependency_depth
        assert 0 <= depth <= MAX_DEPENDENCY_DEPTH


def test_dependency_depth_is_capped_on_long_chains() -> None:
    tasks = [make_task("t0")]
    for i in range(1, 10):
        tasks.append(make_task(f"t{i}", dependencies=[f"t{i - 1}"]))

    assert compute_factors(tasks[-1], tasks).dependency_depth == MAX_DEPENDENCY_DEPTH


def test_unknown_dependency_ids_are_ignored() -> None:
    task = make_task("A", dependencies=["ghost"])
    assert compute_factors(task, [task]).dependency_depth == 0


def test_blocking_count_and_cross_project() -> None:
    a = make_task("A", project="core")
    b = make_task("B", project="core", dependencies=["A"])
    c = make_task("C", project="web", blocking="A")
    unrelated = make_task("D", project="web")
    tasks = [a, b, c, unrelated]

    factors = compute_factors(a, tasks)
    assert factors.blocking_count == 2
    assert factors.cross_project_impact == 1

    same_project = compute_factors(a, [a, b])
    assert same_project.blocking_count == 1
    assert same_project.cross_project_impact == 0


def test_blocking_count_is_capped() -> None:
    root = make_task("root")
    dependents = [make_task(f"d{i}", dependencies=["root"]) for i in range(MAX_BLOCKING_COUNT + 3)]

    assert compute_factors(root, [root, *dependents]).blocking_count == MAX_BLOCKING_COUNT


@pytest.mark.parametrize(
    ("days", "expected"),
    [
        (-0.5, 10),
        (0.5, 9),
        (2, 7),
        (5, 5),
        (10, 3),
        (30, 1),
    ],
)
def test_deadline_buckets(now, days: float, expected: int) -> None:
    task = make_task("A", deadline=due_in(now, days))
    assert time_sensitivity(task, now=now) == expected


def test_naive_deadline_is_read_as_utc(now) -> None:
    # now is 2025-03-10 12:00 UTC
    assert time_sensitivity(make_task("A", deadline=datetime(2025, 3, 11)), now=now) == 9
    assert time_sensitivity(make_task("A", deadline=datetime(2025, 3, 11, 12)), now=now) == 7
    assert time_sensitivity(make_task("A", deadline=datetime(2025, 3, 9)), now=now) == 10

    task = make_task("A", deadline=datetime(2025, 3, 12))
    assert compute_factors(task, [task], now=now).time_sensitivity == 7


def test_time_sensitivity_without_deadline(now) -> None:
    assert time_sensitivity(make_task("A"), now=now) == 0
    assert time_sensitivity(make_task("A", blocking="B"), now=now) == 4


@pytest.mark.parametrize(
    ("effort", "expected"),
    [("low", 9), ("medium", 6), ("high", 3), (None, 6)],
)
def test_effort_value_ratio(effort: str | None, expected: float) -> None:
    task = make_task("A", effort=effort)
    assert compute_factors(task, [task]).effort_value_ratio == expected


def test_factor_overrides_win_over_computed_values() -> None:
    task = make_task("A", factor_overrides={"blockingCount": 7, "time_sensitivity": 2})
    factors = compute_factors(task, [task])

    assert factors.blocking_count == 7
    assert factors.time_sensitivity == 2

    explicit = compute_factors(task, [task], overrides={"dependency_depth": 3, "blocking_count": None})
    assert explicit.dependency_depth == 3
    assert explicit.blocking_count == 0


def test_explain_score_matches_compute_score() -> None:
    factors = TaskFactors(blocking_count=3, time_sensitivity=9, effort_value_ratio=6)
    weights = HeuristicWeights()

    breakdown = explain_score(factors, "P1", weights)

    assert breakdown.base == 100
    assert breakdown.total == pytest.approx(compute_score(factors, "P1", weights))
    assert breakdown.contributions["time_sensitivity"] == pytest.approx(-72)
    assert breakdown.dominant_factor() == "time_sensitivity"
    assert explain_score(TaskFactors(), "P2").dominant_factor() is None


def test_score_all_scores_every_task_against_same_snapshot(now) -> None:
    a = make_task("A", "P1")
    b = make_task("B", "P1", dependencies=["A"])

    by_id = {s.id: s for s in score_all([a, b], HeuristicWeights(), now=now)}

    # A blocks B (10) and has medium effort (6 * 3 = 18): 100 - 10 - 18
    assert by_id["A"].score == pytest.approx(72)
    # B depends on A (depth 1 * 2) and has medium effort: 100 - 2 - 18
    assert by_id["B"].score == pytest.approx(80)
    assert by_id["A"].score < by_id["B"].score


def test_score_all_agrees_with_per_task_factors(now) -> None:
    tasks = [
        make_task("root", "P1", project="api"),
        make_task("a", "P2", dependencies=["root"], blocking="root"),
        make_task("b", "P2", project="web", dependencies=["root", "a", "ghost"]),
        make_task("c", "P3", blocking="b"),
        make_task("d", "P0", dependencies=["c"], effort="low"),
        make_task("self", "P2", dependencies=["self"], blocking="self"),
        make_task("done", "P1", dependencies=["d"], status="complete"),
    ]

    scored = score_all(tasks, HeuristicWeights(), now=now)

    assert [s.id for s in scored] == [t.id for t in tasks]
    for s in scored:
        assert s.factors == compute_factors(s.task, tasks, now=now)
        assert s.score == pytest.approx(compute_score(s.factors, s.task.priority))
    by_id = {s.id: s for s in scored}
    # a lists root twice (dependency and blocker) but counts once.
    assert by_id["root"].factors.blocking_count == 2
    assert by_id["root"].factors.cross_project_impact == 1
    assert by_id["self"].factors.blocking_count == 0
    assert by_id["d"].factors.blocking_count == 1
