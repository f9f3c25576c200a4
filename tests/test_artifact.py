"""Tests for the graph artifact codec."""

import json
from pathlib import Path

import pytest

from conftest import make_node
from depgraph_cli.artifact import deserialize, read_artifact, serialize, write_artifact
from depgraph_cli.errors import CyclicDependency, DecodeError, UnknownDependency
from depgraph_cli.graph import build_graph
from depgraph_cli.models import Node


@pytest.fixture
def rich_graph():
    return build_graph([
        make_node("core", root="libs/core", owners=["platform"], nested={"deep": {"flag": True}}),
        make_node("api", ["core"], root="services/api", replicas=3, ratio=0.5, note=None),
        make_node("web", ["api", "core"], root="services/web"),
        make_node("root", root="."),
    ])


class TestSerialize:
    def test_round_trip(self, rich_graph):
        restored = deserialize(serialize(rich_graph))

        assert restored == rich_graph
        assert restored.get_node("core").metadata == {"owners": ["platform"], "nested": {"deep": {"flag": True}}}
        assert restored.get_node("web").dependencies == {"api", "core"}

    def test_serialization_is_stable(self, rich_graph):
        first = serialize(rich_graph)
        reordered = build_graph(list(reversed(list(rich_graph))))

        assert serialize(rich_graph) == first
        assert serialize(reordered) == first
        assert first.endswith("\n")

    def test_document_layout(self, rich_graph):
        payload = json.loads(serialize(rich_graph))

        assert payload["format_version"] == 1
        assert payload["allow_cycles"] is False
        assert [record["name"] for record in payload["nodes"]] == ["api", "core", "root", "web"]
        web = payload["nodes"][3]
        assert web == {
            "name": "web",
            "root_path": "services/web",
            "dependencies": ["api", "core"],
            "metadata": {},
        }

    def test_cyclic_graph_round_trip_keeps_flag(self):
        graph = build_graph([make_node("a", ["b"]), make_node("b", ["a"])], allow_cycles=True)
        restored = deserialize(serialize(graph))
        assert restored.allow_cycles is True
        assert restored == graph

    def test_file_paths_round_trip(self):
        graph = build_graph([
            Node(name="svc", root_path="svc", include=("src/**",), exclude=("src/gen/**",)),
            make_node("plain", root="plain"),
        ])
        text = serialize(graph)
        records = {record["name"]: record for record in json.loads(text)["nodes"]}

        assert records["svc"]["file_paths"] == {"include": ["src/**"], "exclude": ["src/gen/**"]}
        assert "file_paths" not in records["plain"]
        assert deserialize(text) == graph

    def test_non_finite_metadata_is_not_written(self):
        graph = build_graph([make_node("x", root="x", score=float("nan"))])
        with pytest.raises(ValueError):
            serialize(graph)

    def test_write_and_read(self, rich_graph, temp_dir: Path):
        path = temp_dir / "graph.json"
        write_artifact(rich_graph, path)
        assert read_artifact(path) == rich_graph


class TestDeserialize:
    def test_invalid_json(self):
        with pytest.raises(DecodeError, match="not valid JSON"):
            deserialize("{not json")

    def test_wrong_top_level_type(self):
        with pytest.raises(DecodeError):
            deserialize('"just a string"')

    def test_unsupported_version(self):
        with pytest.raises(DecodeError, match="format_version"):
            deserialize('{"format_version": 99, "nodes": []}')

    def test_bare_list_is_accepted(self):
        graph = deserialize('[{"name": "solo", "root_path": "./solo/", "dependencies": []}]')
        assert graph.get_node("solo").root_path == "solo"
        assert graph.get_node("solo").metadata == {}

    @pytest.mark.parametrize(
        "record",
        [
            "42",
            '{"root_path": "x"}',
            '{"name": "x"}',
            '{"name": "x", "root_path": "x", "dependencies": "y"}',
            '{"name": "x", "root_path": "x", "metadata": []}',
            '{"name": "x", "root_path": "x", "file_paths": []}',
            '{"name": "x", "root_path": "x", "file_paths": {"include": "src"}}',
            '{"name": "x", "root_path": "x", "file_paths": {"exclude": [""]}}',
        ],
    )
    def test_malformed_records(self, record):
        with pytest.raises(DecodeError):
            deserialize('{"nodes": [%s]}' % record)

    def test_unknown_dependency_is_revalidated(self):
        text = json.dumps({"nodes": [{"name": "a", "root_path": "a", "dependencies": ["gone"]}]})

        with pytest.raises(DecodeError) as excinfo:
            deserialize(text)

        (error,) = excinfo.value.errors
        assert isinstance(error, UnknownDependency)
        assert error.dependency == "gone"

    def test_hand_edited_cycle_is_rejected(self, rich_graph):
        payload = json.loads(serialize(rich_graph))
        payload["nodes"][1]["dependencies"] = ["web"]  # core -> web -> core

        with pytest.raises(DecodeError) as excinfo:
            deserialize(json.dumps(payload))

        assert any(isinstance(error, CyclicDependency) for error in excinfo.value.errors)

    def test_missing_artifact_file(self, temp_dir: Path):
        with pytest.raises(DecodeError, match="Cannot read artifact"):
            read_artifact(temp_dir / "missing.json")

    @pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_numbers_are_rejected(self, token):
        text = '{"nodes": [{"name": "x", "root_path": "x", "metadata": {"score": %s}}]}' % token
        with pytest.raises(DecodeError, match="non-finite"):
            deserialize(text)
