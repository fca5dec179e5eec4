"""
Tests for load-level grouping.
"""

import random

import pytest
from modstage.exceptions import CircularDependencyError
from modstage.exceptions import MissingDependencyError
from modstage.levels import build_levels
from modstage.testing import make_module


def names(levels):
    return [[m.name for m in level] for level in levels]


def group(modules, loaded=(), registered=None):
    known = {m.name for m in modules} | set(registered or ())
    return build_levels(modules, lambda name: name in loaded, known.__contains__)


def test_shop_scenario():
    """auth and catalog first, then cart, then checkout."""
    modules = [
        make_module("auth"),
        make_module("catalog"),
        make_module("cart", dependencies=["auth", "catalog"]),
        make_module("checkout", dependencies=["cart"]),
    ]

    assert names(group(modules)) == [["auth", "catalog"], ["cart"], ["checkout"]]


def test_dependents_never_share_a_level_with_their_dependencies():
    """Input order must not let a dependent join its dependency's level."""
    modules = [make_module("base"), make_module("top", dependencies=["base"])]

    assert names(group(modules)) == [["base"], ["top"]]


def test_input_order_kept_within_level():
    modules = [make_module("zeta"), make_module("alpha"), make_module("mid")]

    assert names(group(modules)) == [["zeta", "alpha", "mid"]]


def test_loaded_dependency_is_satisfied():
    modules = [make_module("reports", dependencies=["auth"])]

    assert names(group(modules, loaded={"auth"})) == [["reports"]]


def test_registered_dependency_outside_cohort_is_satisfied():
    modules = [make_module("reports", dependencies=["charts"])]

    assert names(group(modules, registered={"charts"})) == [["reports"]]


def test_empty_cohort():
    assert group([]) == []


def test_cycle_raises_with_partial_levels():
    modules = [
        make_module("a", dependencies=["b"]),
        make_module("b", dependencies=["a"]),
        make_module("c"),
    ]

    with pytest.raises(CircularDependencyError) as exc_info:
        group(modules)

    error = exc_info.value
    assert error.cycle == ["a", "b", "a"]
    assert error.modules == ["a", "b"]
    assert error.levels == [["c"]]
    assert "a -> b -> a" in str(error)


def test_self_dependency_is_a_cycle():
    with pytest.raises(CircularDependencyError) as exc_info:
        group([make_module("solo", dependencies=["solo"])])

    assert exc_info.value.cycle == ["solo", "solo"]


def test_cycle_reported_for_stuck_dependents():
    """A module waiting on a cycle is stuck but not part of the cycle."""
    modules = [
        make_module("waiting", dependencies=["x"]),
        make_module("x", dependencies=["y"]),
        make_module("y", dependencies=["x"]),
    ]

    with pytest.raises(CircularDependencyError) as exc_info:
        group(modules)

    assert exc_info.value.cycle == ["x", "y", "x"]
    assert sorted(exc_info.value.modules) == ["waiting", "x", "y"]


def test_missing_dependency_raises():
    modules = [make_module("a"), make_module("b", dependencies=["a", "ghost"])]

    with pytest.raises(MissingDependencyError) as exc_info:
        group(modules)

    error = exc_info.value
    assert error.module_name == "b"
    assert error.missing == ["ghost"]
    assert error.levels == [["a"]]
    assert error.modules == ["b"]


def test_each_stuck_module_gets_its_own_cause():
    modules = [
        make_module("orphan", dependencies=["ghost"]),
        make_module("a", dependencies=["b"]),
        make_module("b", dependencies=["a"]),
        make_module("blocked", dependencies=["orphan"]),
        make_module("c"),
    ]

    with pytest.raises(MissingDependencyError) as exc_info:
        group(modules)

    causes = exc_info.value.causes
    assert sorted(causes) == ["a", "b", "blocked", "orphan"]
    assert isinstance(causes["orphan"], MissingDependencyError)
    assert causes["orphan"].missing == ["ghost"]
    assert isinstance(causes["a"], CircularDependencyError)
    assert causes["a"].cycle == ["a", "b", "a"]
    assert causes["b"].cycle == ["b", "a", "b"]
    assert not isinstance(causes["blocked"], (MissingDependencyError, CircularDependencyError))
    assert "depends on orphan" in str(causes["blocked"])


@pytest.mark.parametrize("seed", range(10))
def test_random_dags_respect_dependency_order(seed):
    """Every dependency sits in a strictly earlier level than its dependent."""
    rng = random.Random(seed)
    count = 15
    modules = []
    for i in range(count):
        deps = [f"m{j}" for j in range(i) if rng.random() < 0.25]
        modules.append(make_module(f"m{i}", dependencies=deps))
    rng.shuffle(modules)

    levels = group(modules)

    level_of = {m.name: index for index, level in enumerate(levels) for m in level}
    assert sorted(level_of) == sorted(m.name for m in modules)
    for module in modules:
        for dep in module.dependencies:
            assert level_of[dep] < level_of[module.name]
