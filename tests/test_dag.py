"""
Tests for DAG utilities — ordering, validation, cycle extraction.
"""

from provisioner.core.engine.dag import (
    find_cycle,
    find_duplicate_ids,
    find_unknown_refs,
    stable_topological_order,
    transitive_predecessors,
)


class TestDuplicates:
    def test_none(self):
        assert find_duplicate_ids(["a", "b", "c"]) == []

    def test_reported_once(self):
        assert find_duplicate_ids(["a", "b", "a", "a", "b"]) == ["a", "b"]


class TestUnknownRefs:
    def test_all_known(self):
        assert find_unknown_refs({"a": [], "b": ["a"]}) == []

    def test_missing(self):
        assert find_unknown_refs({"a": ["ghost"], "b": ["a"]}) == [("a", "ghost")]


class TestStableTopologicalOrder:
    def test_valid_order_unchanged(self):
        graph = {"a": [], "b": ["a"], "c": ["b"], "d": []}
        order, blocked = stable_topological_order(graph)
        assert order == ["a", "b", "c", "d"]
        assert blocked == []

    def test_dependency_declared_later_moves_up(self):
        graph = {"packages": ["runtime"], "other": [], "runtime": []}
        order, _ = stable_topological_order(graph)
        assert order.index("runtime") < order.index("packages")

    def test_ties_keep_declaration_order(self):
        graph = {"z": [], "y": [], "x": ["z"], "w": []}
        order, _ = stable_topological_order(graph)
        assert order == ["z", "y", "x", "w"]

    def test_ready_step_runs_before_later_independent_steps(self):
        # "b" becomes ready once "c" is placed; it was declared before "d"
        graph = {"b": ["c"], "c": [], "d": []}
        order, _ = stable_topological_order(graph)
        assert order == ["c", "b", "d"]

    def test_cycle_blocks(self):
        graph = {"a": ["b"], "b": ["a"], "c": []}
        order, blocked = stable_topological_order(graph)
        assert order == ["c"]
        assert sorted(blocked) == ["a", "b"]

    def test_self_dependency_is_a_cycle(self):
        _, blocked = stable_topological_order({"a": ["a"]})
        assert blocked == ["a"]


class TestFindCycle:
    def test_two_node_cycle(self):
        graph = {"a": ["b"], "b": ["a"]}
        cycle = find_cycle(graph, ["a", "b"])
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b"}

    def test_node_behind_cycle(self):
        graph = {"x": ["a"], "a": ["b"], "b": ["a"]}
        cycle = find_cycle(graph, ["x", "a", "b"])
        assert "x" not in cycle
        assert set(cycle) == {"a", "b"}

    def test_empty(self):
        assert find_cycle({}, []) == []


class TestTransitivePredecessors:
    def test_closure(self):
        graph = {"a": [], "b": ["a"], "c": ["b"], "d": []}
        assert transitive_predecessors(graph, ["c"]) == {"a", "b", "c"}
        assert transitive_predecessors(graph, ["d"]) == {"d"}
