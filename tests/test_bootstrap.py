# tests/test_bootstrap.py

from __future__ import annotations

import json
from pathlib import Path

import pytest

from priority_forge.cli.bootstrap import create_engine, load_tasks_file


def test_create_engine_from_settings(settings) -> None:
    settings.weight_dependency = 7.0
    settings.rebalance_max_events = 2

    engine = create_engine(settings=settings)

    assert settings.data_dir.is_dir()
    assert engine.weights.dependency == 7.0
    assert len(engine) == 0
    for _ in range(4):
        engine.recalculate()
    assert len(engine.rebalance_events()) == 2


def test_load_tasks_file_accepts_export_shape(tmp_path: Path, settings) -> None:
    path = tmp_path / "tasks.json"
    path.write_text(
        json.dumps(
            {
                "tasks": [
                    {"id": "a", "priority": "P0", "task": "Hotfix"},
                    {"id": "b", "priority": "P2", "dependencies": ["a"]},
                    {"priority": "P1"},
                    "garbage",
                ]
            }
        ),
        "utf-8",
    )

    tasks = load_tasks_file(path)
    assert [t.id for t in tasks] == ["a", "b"]

    engine = create_engine(settings=settings)
    engine.load(tasks)
    assert engine.ranked_ids() == ["a", "b"]


def test_load_tasks_file_rejects_wrong_shape(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps(42), "utf-8")

    with pytest.raises(ValueError):
        load_tasks_file(path)
