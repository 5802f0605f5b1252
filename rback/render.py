# rback/render.py
"""
Renderers for the graph description built by graph_builder.

to_dot(G) -> str        Graphviz DOT text (pydot)
render_html(G, path)    interactive page (pyvis)
"""
import logging

import pydot
from pyvis.network import Network

from rback import config
from rback.nodes import (
    CLUSTER_ROLE,
    CLUSTER_ROLE_BINDING,
    CONTAINERS,
    ROLE,
    ROLE_BINDING,
    RULES,
    SUBJECT,
)

logger = logging.getLogger("render")
logger.setLevel(config.LOG_LEVEL)
if not logger.handlers:
    logger.addHandler(logging.StreamHandler())


NODE_STYLES = {
    SUBJECT: {"shape": "box", "style": "filled", "fillcolor": "#2f6de1", "fontcolor": "#f0f0f0"},
    ROLE_BINDING: {"shape": "octagon", "style": "filled", "fillcolor": "#ffcc00", "fontcolor": "#030303"},
    CLUSTER_ROLE_BINDING: {"shape": "doubleoctagon", "style": "filled", "fillcolor": "#ffcc00", "fontcolor": "#030303"},
    ROLE: {"shape": "octagon", "style": "filled", "fillcolor": "#ff9900", "fontcolor": "#030303"},
    CLUSTER_ROLE: {"shape": "doubleoctagon", "style": "filled", "fillcolor": "#ff9900", "fontcolor": "#030303"},
    RULES: {"shape": "note"},
}

# vis.js has no octagons; closest shapes instead
HTML_SHAPES = {
    SUBJECT: "box",
    ROLE_BINDING: "hexagon",
    CLUSTER_ROLE_BINDING: "hexagon",
    ROLE: "box",
    CLUSTER_ROLE: "box",
    RULES: "box",
}


# ---------- DOT ----------
def _quote(text, newline="\\n"):
    """
    Quote a DOT id or label. Ids are always quoted so that ':' is never
    read as a port separator.
    """
    text = str(text).replace("\\", "\\\\").replace('"', '\\"').replace("\n", newline)
    return f'"{text}"'


def _node_attrs(attrs):
    kind = attrs["kind"]
    styled = dict(NODE_STYLES[kind])
    if kind == RULES:
        # \l left-justifies every line
        styled["label"] = _quote(attrs["label"], newline="\\l")
        return styled
    styled["label"] = _quote(attrs["label"])
    if attrs.get("dashed"):
        styled["style"] = _quote("filled,dashed")
    styled["penwidth"] = "2.0" if attrs.get("highlight") else "1.0"
    return styled


def _clusters(dot, G):
    clusters = {}
    # containers are stored parents first
    for i, (cid, container) in enumerate(G.graph.get(CONTAINERS, {}).items()):
        cluster = pydot.Cluster(str(i), label=_quote(container["label"]))
        if container.get("style"):
            cluster.set("style", container["style"])
        parent = clusters.get(container.get("parent"), dot)
        parent.add_subgraph(cluster)
        clusters[cid] = cluster
    return clusters


def to_dot(G) -> str:
    dot = pydot.Dot(graph_type="digraph", newrank="true")
    clusters = _clusters(dot, G)

    for node, attrs in G.nodes(data=True):
        owner = clusters.get(attrs.get("container"), dot)
        owner.add_node(pydot.Node(_quote(node), **_node_attrs(attrs)))

    for u, v, data in G.edges(data=True):
        edge = pydot.Edge(_quote(u), _quote(v))
        if data.get("dir"):
            edge.set("dir", data["dir"])
        dot.add_edge(edge)

    return dot.to_string()


# ---------- HTML ----------
def _html_group(attrs):
    return attrs.get("container") or "cluster"


def render_html(G, path):
    """Write an interactive pyvis page for G to path."""
    net = Network(
        height=config.HTML_HEIGHT,
        width="100%",
        directed=True,
        bgcolor="#ffffff",
        font_color="#1e293b",
        cdn_resources="remote",
    )
    net.set_options("""
    {
      "layout": {"hierarchical": {"enabled": true, "direction": "LR", "sortMethod": "directed"}},
      "physics": {"enabled": false},
      "interaction": {"hover": true, "zoomView": true, "dragView": true},
      "edges": {"smooth": {"type": "cubicBezier"}, "color": "#94a3b8"}
    }
    """)

    for node, attrs in G.nodes(data=True):
        kind = attrs["kind"]
        style = NODE_STYLES[kind]
        net.add_node(
            node,
            label=attrs["label"],
            title=node,
            shape=HTML_SHAPES[kind],
            color=style.get("fillcolor", "#f5f5f5"),
            font={"color": style.get("fontcolor", "#030303"), "align": "left" if kind == RULES else "center"},
            group=_html_group(attrs),
            borderWidth=4 if attrs.get("highlight") else 1,
            shapeProperties={"borderDashes": bool(attrs.get("dashed"))},
        )

    for u, v, data in G.edges(data=True):
        # dir=back: drawn pointing at the source
        net.add_edge(u, v, arrows="from" if data.get("dir") == "back" else "to")

    net.write_html(path)
    logger.info(f"HTML graph written to {path}")
    return path
