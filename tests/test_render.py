# tests/test_render.py

from unittest.mock import patch

import networkx as nx
import pytest

from rback.fetch_rbac import fetch_permissions
from rback.filters import FilterSpec
from rback.graph_builder import build_graph
from rback.render import _quote, render_html, to_dot


@pytest.fixture
def graph(cluster_client):
    spec = FilterSpec.from_args(ignore_prefixes="system:")
    return build_graph(fetch_permissions(cluster_client, spec), spec, show_legend=True)


# -------------------------------------------------------------
# QUOTING
# -------------------------------------------------------------
def test_quote_escapes():
    assert _quote('a "b"\\c') == '"a \\"b\\"\\\\c"'
    assert _quote("x\ny") == '"x\\ny"'
    assert _quote("x\ny\n", newline="\\l") == '"x\\ly\\l"'


# -------------------------------------------------------------
# DOT
# -------------------------------------------------------------
def test_dot_header(graph):
    dot = to_dot(graph)
    assert dot.startswith("digraph")
    assert "newrank=true" in dot


def test_dot_namespace_clusters(graph):
    dot = to_dot(graph)
    assert "subgraph cluster_0" in dot
    assert 'label="LEGEND"' in dot
    assert 'label="ci"' in dot
    assert 'label="prod"' in dot
    assert "style=dashed" in dot


def test_dot_node_styles(graph):
    dot = to_dot(graph)
    assert '"ServiceAccount-ci/deployer"' in dot
    assert "doubleoctagon" in dot
    assert "#2f6de1" in dot
    assert 'style="filled,dashed"' in dot
    assert "shape=note" in dot


def test_dot_subject_edges_point_back(graph):
    dot = to_dot(graph)
    assert '"ServiceAccount-ci/deployer" -> "crb-cluster-viewers" [dir=back]' in dot


def test_dot_rules_are_left_justified(graph):
    dot = to_dot(graph)
    assert 'label="get,list pods\\l"' in dot


def test_dot_highlight_penwidth():
    G = nx.DiGraph()
    G.add_node("rb-ci/x", kind="rolebinding", label="x", container=None, highlight=True)
    G.add_node("rb-ci/y", kind="rolebinding", label="y", container=None, highlight=False)
    dot = to_dot(G)
    assert "penwidth=2.0" in dot
    assert "penwidth=1.0" in dot


def test_dot_quotes_colons():
    G = nx.DiGraph()
    G.add_node("User-/system:admin", kind="subject", label="system:admin\n(User)", container=None, highlight=False)
    dot = to_dot(G)
    assert '"User-/system:admin"' in dot
    assert 'label="system:admin\\n(User)"' in dot


# -------------------------------------------------------------
# HTML
# -------------------------------------------------------------
@patch("rback.render.Network")
def test_render_html(mock_network, graph, tmp_path):
    net = mock_network.return_value
    path = str(tmp_path / "graph.html")
    assert render_html(graph, path) == path
    net.write_html.assert_called_once_with(path)
    assert net.add_node.call_count == graph.number_of_nodes()
    assert net.add_edge.call_count == graph.number_of_edges()


@patch("rback.render.Network")
def test_render_html_edge_direction_and_groups(mock_network, graph, tmp_path):
    net = mock_network.return_value
    render_html(graph, str(tmp_path / "graph.html"))
    edges = {(c.args[0], c.args[1]): c.kwargs["arrows"] for c in net.add_edge.call_args_list}
    assert edges[("ServiceAccount-ci/deployer", "crb-cluster-viewers")] == "from"
    assert edges[("crb-cluster-viewers", "cr-/view")] == "to"
    groups = {c.args[0]: c.kwargs["group"] for c in net.add_node.call_args_list}
    assert groups["rb-ci/read-pods"] == "namespace/ci"
    assert groups["crb-cluster-viewers"] == "cluster"


def test_render_html_writes_file(graph, tmp_path):
    path = tmp_path / "graph.html"
    render_html(graph, str(path))
    html = path.read_text(encoding="utf-8")
    assert "ServiceAccount-ci/deployer" in html


def test_dot_subjects_are_boxes():
    G = nx.DiGraph()
    G.add_node("User-/alice", kind="subject", label="alice\n(User)", container=None, highlight=False)
    node_line = next(line for line in to_dot(G).splitlines() if '"User-/alice"' in line)
    assert "shape=box" in node_line
