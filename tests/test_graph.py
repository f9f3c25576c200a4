"""Tests for graph assembly and structural validation."""

import itertools

import pytest

from conftest import make_node
from depgraph_cli.errors import (
    CyclicDependency,
    DuplicateName,
    DuplicateRoot,
    UnknownDependency,
    ValidationError,
)
from depgraph_cli.graph import build_graph


def _rotations(cycle):
    body = cycle[:-1]
    return [body[i:] + body[:i] + [body[i]] for i in range(len(body))]


class TestBuildGraph:
    """Tests for successful graph construction."""

    def test_graph_creation_success(self):
        graph = build_graph([
            make_node("a"),
            make_node("b", ["a"]),
            make_node("c", ["b"]),
        ])

        assert len(graph) == 3
        assert graph.get_node("a") is not None
        assert graph.get_node("d") is None
        assert "c" in graph
        assert graph.edges == {"a": frozenset(), "b": {"a"}, "c": {"b"}}

    def test_nodes_are_ordered_by_name(self):
        graph = build_graph([make_node("zeta"), make_node("alpha"), make_node("mid")])
        assert [node.name for node in graph] == ["alpha", "mid", "zeta"]

    def test_empty_graph(self):
        assert len(build_graph([])) == 0

    def test_input_order_does_not_matter(self):
        nodes = [make_node("a"), make_node("b", ["a"]), make_node("c", ["a", "b"])]
        graphs = [build_graph(order) for order in itertools.permutations(nodes)]
        assert all(graph == graphs[0] for graph in graphs)

    def test_nested_roots_are_allowed(self):
        graph = build_graph([make_node("outer", root="a/b"), make_node("inner", root="a/b/c")])
        assert len(graph) == 2


class TestValidationErrors:
    """Tests for the accumulated error report."""

    def test_duplicate_node_name(self):
        with pytest.raises(ValidationError) as excinfo:
            build_graph([make_node("shared", root="x"), make_node("shared", root="y")])

        errors = excinfo.value.errors
        assert len(errors) == 1
        assert isinstance(errors[0], DuplicateName)
        assert errors[0].name == "shared"
        assert errors[0].paths == ["x", "y"]

    def test_duplicate_root(self):
        with pytest.raises(ValidationError) as excinfo:
            build_graph([make_node("one", root="same"), make_node("two", root="same")])

        (error,) = excinfo.value.errors
        assert isinstance(error, DuplicateRoot)
        assert error.names == ["one", "two"]

    def test_missing_dependency(self):
        with pytest.raises(ValidationError) as excinfo:
            build_graph([make_node("a", ["missing"])])

        (error,) = excinfo.value.errors
        assert isinstance(error, UnknownDependency)
        assert error.node == "a"
        assert error.dependency == "missing"
        assert error.path == "test/a"

    def test_circular_dependency_reports_full_path(self):
        with pytest.raises(ValidationError) as excinfo:
            build_graph([
                make_node("a", ["b"]),
                make_node("b", ["c"]),
                make_node("c", ["a"]),
            ])

        errors = excinfo.value.errors
        assert len(errors) == 1
        assert isinstance(errors[0], CyclicDependency)
        assert errors[0].cycle in _rotations(["a", "b", "c", "a"])
        assert "a -> b -> c -> a" in str(errors[0])

    def test_self_dependency(self):
        with pytest.raises(ValidationError) as excinfo:
            build_graph([make_node("solo", ["solo"])])

        (error,) = excinfo.value.errors
        assert error.cycle == ["solo", "solo"]

    def test_cycle_reachable_from_acyclic_prefix(self):
        with pytest.raises(ValidationError) as excinfo:
            build_graph([
                make_node("entry", ["x"]),
                make_node("x", ["y"]),
                make_node("y", ["x"]),
            ])

        (error,) = excinfo.value.errors
        assert error.cycle == ["x", "y", "x"]

    def test_errors_are_accumulated(self):
        with pytest.raises(ValidationError) as excinfo:
            build_graph([
                make_node("dup", root="one"),
                make_node("dup", root="two"),
                make_node("orphan", ["ghost"]),
                make_node("p", ["q"]),
                make_node("q", ["p"]),
            ])

        kinds = [type(error).__name__ for error in excinfo.value.errors]
        assert kinds == ["DuplicateName", "UnknownDependency", "CyclicDependency"]

    def test_errors_are_deterministic(self):
        nodes = [
            make_node("b", ["missing-2", "missing-1"]),
            make_node("a", ["c"]),
            make_node("c", ["a"]),
            make_node("d", ["e"]),
            make_node("e", ["d"]),
        ]
        reports = []
        for order in itertools.permutations(nodes):
            with pytest.raises(ValidationError) as excinfo:
                build_graph(order)
            reports.append([error.to_dict() for error in excinfo.value.errors])

        assert all(report == reports[0] for report in reports)
        assert reports[0][0] == {
            "kind": "UnknownDependency", "node": "b", "dependency": "missing-1", "path": "test/b",
        }
        assert reports[0][2] == {"kind": "CyclicDependency", "cycle": ["a", "c", "a"]}
        assert reports[0][3] == {"kind": "CyclicDependency", "cycle": ["d", "e", "d"]}

    def test_cyclical_dependency_allowed(self):
        graph = build_graph(
            [make_node("a", ["b"]), make_node("b", ["c"]), make_node("c", ["a"])],
            allow_cycles=True,
        )
        assert graph.allow_cycles is True
        assert graph.dependents_of("a") == ["b", "c"]


class TestTraversal:
    """Tests for transitive dependency lookups."""

    def test_dependencies_of(self):
        graph = build_graph([
            make_node("a"),
            make_node("b", ["a"]),
            make_node("c", ["b"]),
            make_node("d"),
        ])

        assert graph.dependencies_of("c") == ["a", "b"]
        assert graph.dependencies_of("a") == []

    def test_dependents_of(self):
        graph = build_graph([
            make_node("a"),
            make_node("b", ["a"]),
            make_node("c", ["b"]),
            make_node("d", ["a"]),
        ])

        assert graph.dependents_of("a") == ["b", "c", "d"]
        assert graph.dependents_of("c") == []

    def test_complex_dependency_chain(self):
        graph = build_graph([
            make_node("a"),
            make_node("b", ["a"]),
            make_node("c", ["b"]),
            make_node("d", ["b", "c"]),
            make_node("e", ["a", "d"]),
        ])

        assert graph.dependencies_of("e") == ["a", "b", "c", "d"]
        assert graph.dependents_map()["b"] == {"c", "d"}

    def test_unknown_name_raises_key_error(self):
        graph = build_graph([make_node("a")])
        with pytest.raises(KeyError):
            graph.dependents_of("nope")
