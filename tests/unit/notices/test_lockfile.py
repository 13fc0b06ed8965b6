"""
workspace-orchestrator: unit tests for the lockfile walker

Purpose
- Validate pre-order collection, deduplication, cycle termination and missing-entry handling.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from hypothesis import given
from hypothesis import strategies as st

from workspace_orchestrator.notices.lockfile import LockfileError, LockfileGraph, collect


def _graph(edges: dict[str, list[str]], versions: dict[str, str] | None = None) -> LockfileGraph:
    versions = versions or {}
    return LockfileGraph(
        packages={
            f"node_modules/{name}": {
                "version": versions.get(name, "1.0.0"),
                "dependencies": {dep: "^1.0.0" for dep in deps},
            }
            for name, deps in edges.items()
        }
    )


def test_diamond_visits_shared_dependency_once_in_pre_order() -> None:
    graph = _graph({"a": ["b", "c"], "b": ["d"], "c": ["d"], "d": []})

    result = collect(["a"], graph)

    assert list(result.visited) == ["a", "b", "d", "c"]
    assert result.missing == []


def test_cycle_terminates() -> None:
    graph = _graph({"a": ["b"], "b": ["a"]})

    result = collect(["a"], graph)

    assert list(result.visited) == ["a", "b"]


def test_locked_version_wins_over_edge_range() -> None:
    graph = LockfileGraph(
        packages={
            "node_modules/a": {"version": "2.3.4", "dependencies": {"b": "^9.0.0"}},
            "node_modules/b": {"version": "1.0.1"},
        }
    )

    assert collect(["a"], graph).items() == [("a", "2.3.4"), ("b", "1.0.1")]


def test_missing_entries_warn_once_and_are_skipped(caplog: pytest.LogCaptureFixture) -> None:
    graph = _graph({"a": ["ghost", "b"], "b": ["ghost"]})

    with caplog.at_level(logging.WARNING):
        result = collect(["a", "ghost"], graph)

    assert list(result.visited) == ["a", "b"]
    assert result.missing == ["ghost"]
    warnings = [record.getMessage() for record in caplog.records]
    assert warnings == ["Could not find package info for ghost in the lockfile"]


def test_roots_are_visited_in_declaration_order() -> None:
    graph = _graph({"z": [], "a": ["m"], "m": []})
    assert list(collect(["z", "a"], graph).visited) == ["z", "a", "m"]


def test_load_requires_packages_table(tmp_path: Path) -> None:
    lockfile = tmp_path / "package-lock.json"
    lockfile.write_text(json.dumps({"lockfileVersion": 3}), encoding="utf-8")
    with pytest.raises(LockfileError, match="packages"):
        LockfileGraph.load(lockfile)

    with pytest.raises(LockfileError):
        LockfileGraph.load(tmp_path / "missing.json")


def test_load_reads_nested_records(tmp_path: Path) -> None:
    lockfile = tmp_path / "package-lock.json"
    lockfile.write_text(
        json.dumps(
            {
                "packages": {
                    "": {"name": "root"},
                    "node_modules/a": {"version": "1.0.0", "dependencies": {"b": "*"}},
                    "node_modules/b": {"version": "0.1.0"},
                }
            }
        ),
        encoding="utf-8",
    )

    graph = LockfileGraph.load(lockfile)

    assert graph.edges("a") == ("b",)
    assert graph.edges("b") == ()
    assert graph.record("missing") is None


_NAMES = st.sampled_from([f"pkg{i}" for i in range(8)])


@given(
    edges=st.dictionaries(_NAMES, st.lists(_NAMES, max_size=5), max_size=8),
    roots=st.lists(_NAMES, min_size=1, max_size=4),
)
def test_walk_terminates_and_visits_each_reachable_name_once(
    edges: dict[str, list[str]], roots: list[str]
) -> None:
    graph = _graph(edges)

    result = collect(roots, graph)

    reachable: set[str] = set()
    pending = [root for root in roots if root in edges]
    while pending:
        name = pending.pop()
        if name in reachable:
            continue
        reachable.add(name)
        pending.extend(dep for dep in edges[name] if dep in edges)

    assert set(result.visited) == reachable
    assert len(result.visited) == len(reachable)
    assert len(set(result.missing)) == len(result.missing)
    assert not set(result.missing) & set(edges)
