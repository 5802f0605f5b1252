# app/main.py
"""
rback command line.

Prints the RBAC permission graph of a cluster (or of a saved snapshot) as
Graphviz DOT, an interactive HTML page, or JSON:

    rback | dot -Tpng > rbac.png
    rback sa deployer -n ci
    rback cr view --format html -o view.html
    rback --snapshot rbac.json.enc --no-render-rules
"""
import argparse
import json
import logging
import os
import sys
import tempfile

from rback import config
from rback.errors import RbackError
from rback.fetch_rbac import fetch_permissions
from rback.filters import KIND_ALIASES, FilterSpec
from rback.graph_builder import build_graph, export_graph_json, graph_to_dict
from rback.kube_client import KubeClient, SnapshotClient
from rback.render import render_html, to_dot

logger = logging.getLogger("main")
logger.setLevel(config.LOG_LEVEL)
if not logger.handlers:
    logger.addHandler(logging.StreamHandler())

FORMATS = ("dot", "html", "json")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="rback",
        description="Visualize Kubernetes RBAC: who is bound to which role, and what that role allows.",
    )
    parser.add_argument(
        "kind", nargs="?", default=None,
        help=f"Focus on one resource kind ({', '.join(sorted(KIND_ALIASES))} or the singular name)",
    )
    parser.add_argument("names", nargs="*", help="Resource names to focus on (default: all)")
    parser.add_argument("-n", "--namespaces", default="",
                        help="Comma-delimited namespaces; empty or '*' means all")
    parser.add_argument("--ignore-prefixes", default=config.IGNORE_PREFIXES,
                        help="Comma-delimited name prefixes to leave out; 'none' keeps everything")
    parser.add_argument("--show-legend", action=argparse.BooleanOptionalAction, default=config.SHOW_LEGEND,
                        help="Draw the legend")
    parser.add_argument("--render-rules", action=argparse.BooleanOptionalAction, default=config.RENDER_RULES,
                        help="Draw the access rules of each role")
    parser.add_argument("--kubeconfig", default=config.KUBECONFIG, help="Path to a kubeconfig file")
    parser.add_argument("--context", default=config.KUBE_CONTEXT, help="Kubeconfig context to use")
    parser.add_argument("--snapshot", default=None,
                        help="Read records from a 'kubectl get ... -A -o json' dump (.enc = Fernet encrypted)")
    parser.add_argument("--format", choices=FORMATS,
                        default=config.OUTPUT_FORMAT if config.OUTPUT_FORMAT in FORMATS else "dot",
                        help="Output format")
    parser.add_argument("-o", "--output", default=None, help="Write to this file instead of stdout")
    return parser


# ---------- Helpers ----------
def make_client(args):
    if args.snapshot:
        logger.info(f"Reading RBAC records from snapshot {args.snapshot}")
        return SnapshotClient(args.snapshot)
    return KubeClient(kubeconfig=args.kubeconfig, context=args.context)


def _html_text(G):
    with tempfile.TemporaryDirectory(prefix="rback_") as tmpdir:
        html_path = render_html(G, os.path.join(tmpdir, "graph.html"))
        with open(html_path, "r", encoding="utf-8") as f:
            return f.read()


def write_output(G, fmt, path=None, stream=None):
    """Render G in fmt to path, or to stream (stdout) when no path is given."""
    stream = stream or sys.stdout
    try:
        if path:
            if fmt == "html":
                render_html(G, path)
            elif fmt == "json":
                export_graph_json(G, path)
            else:
                with open(path, "w", encoding="utf-8") as f:
                    f.write(to_dot(G))
            logger.info(f"Graph written to {path}")
            return path
    except OSError as e:
        raise RbackError(f"Can't write {path}: {e}") from e

    if fmt == "html":
        stream.write(_html_text(G))
    elif fmt == "json":
        stream.write(json.dumps(graph_to_dict(G), indent=2) + "\n")
    else:
        stream.write(to_dot(G))
    return None


# ---------- Entry points ----------
def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        filter_spec = FilterSpec.from_args(
            kind=args.kind,
            names=args.names,
            namespaces=args.namespaces,
            ignore_prefixes=args.ignore_prefixes,
        )
    except ValueError as e:
        parser.error(str(e))

    try:
        client = make_client(args)
        permissions = fetch_permissions(client, filter_spec)
        G = build_graph(
            permissions,
            filter_spec,
            show_legend=args.show_legend,
            render_rules=args.render_rules,
        )
        write_output(G, args.format, args.output)
    except RbackError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"rback: {e}", file=sys.stderr)
        return e.exit_code
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
