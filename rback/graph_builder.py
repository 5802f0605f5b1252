# rback/graph_builder.py
"""
Graph Assembler for rback.

- Walks the fetched permissions once, in three phases:
    LEGEND -> SUBJECTS -> BINDINGS
- Subject and scope nodes are created on first use and reused afterwards
- Which bindings are drawn depends on the focus kind (see should_render_binding)
- Only explicitly requested names are highlighted
- Iteration order is fixed (cluster scope first, then namespaces and names
  sorted), so identical input gives an identical graph

build_graph(permissions, filter_spec, show_legend=True, render_rules=True) -> networkx.DiGraph
export_graph_json(G, path) -> path
"""
import json
import logging

import networkx as nx

from rback import config
from rback.bindings import resolve_bindings
from rback.errors import AssemblyError
from rback.filters import FilterTarget, target_for_subject
from rback.legend import render_legend
from rback.models import CLUSTER_SCOPE, Scope, SubjectKind, namespaces_of
from rback.nodes import (
    CONTAINERS,
    add_cluster_role_binding_node,
    add_cluster_role_node,
    add_container,
    add_role_binding_node,
    add_role_node,
    add_rules_node,
    add_subject_node,
    cluster_role_binding_key,
    cluster_role_key,
    namespace_container_id,
    role_binding_key,
    role_key,
    rules_key,
    subject_key,
)
from rback.rules import lookup_rules

logger = logging.getLogger("graph_builder")
logger.setLevel(config.LOG_LEVEL)
if not logger.handlers:
    logger.addHandler(logging.StreamHandler())


class GraphIndex:
    """Per-run lookup tables: subject node per identity, container per namespace."""

    def __init__(self):
        self.subjects = {}
        # the cluster scope is the root graph itself
        self.scopes = {CLUSTER_SCOPE: None}


# ---------- Reuse-or-create ----------
def existing_or_new_scope(G, index, namespace):
    if namespace not in index.scopes:
        index.scopes[namespace] = add_container(
            G, namespace_container_id(namespace), namespace, style="dashed")
    return index.scopes[namespace]


def existing_or_new_subject_node(G, index, filter_spec, identity):
    key = index.subjects.get(identity)
    if key is not None:
        return key
    container = existing_or_new_scope(G, index, identity.namespace)
    highlight = filter_spec.is_focused(target_for_subject(identity.kind), identity.namespace, identity.name)
    key = add_subject_node(
        G, subject_key(identity.kind.value, identity.namespace, identity.name),
        container, identity.kind.value, identity.name, highlight=highlight,
    )
    index.subjects[identity] = key
    return key


# ---------- Inclusion ----------
def should_render_binding(binding, filter_spec) -> bool:
    target = filter_spec.target
    role = binding.role
    if target is FilterTarget.NONE:
        return filter_spec.matches_namespace(binding.namespace)
    if target is FilterTarget.SERVICE_ACCOUNT:
        return any(
            s.kind is SubjectKind.SERVICE_ACCOUNT and filter_spec.matches(s.namespace, s.name)
            for s in binding.subjects
        )
    if target is FilterTarget.ROLE:
        return filter_spec.matches(role.namespace, role.name)
    if target is FilterTarget.CLUSTER_ROLE:
        in_scope = role.scope is Scope.CLUSTER or filter_spec.matches_namespace(role.namespace)
        return in_scope and filter_spec.matches_name(role.name)
    if target is FilterTarget.ROLE_BINDING:
        return filter_spec.matches(binding.namespace, binding.name)
    if target is FilterTarget.CLUSTER_ROLE_BINDING:
        return binding.scope is Scope.CLUSTER and filter_spec.matches_name(binding.name)
    raise AssemblyError(f"Unhandled focus kind {target!r}")


def should_render_subject(subject, filter_spec) -> bool:
    # with a service-account focus only the requested accounts are drawn
    if filter_spec.target is FilterTarget.SERVICE_ACCOUNT:
        return filter_spec.matches(subject.namespace, subject.name)
    return True


def namespaces_to_show(permissions, filter_spec):
    if filter_spec.all_namespaces:
        return namespaces_of(permissions.service_accounts, permissions.roles, permissions.role_bindings)
    return sorted(filter_spec.namespaces)


# ---------- Bindings ----------
def render_binding_and_role(G, index, permissions, filter_spec, binding, render_rules=True):
    """Emit binding -> role (-> rules) inside the binding's scope; return the binding node."""
    container = existing_or_new_scope(G, index, binding.namespace)

    if binding.scope is Scope.CLUSTER:
        binding_node = add_cluster_role_binding_node(
            G, cluster_role_binding_key(binding.name), container, binding.name,
            highlight=filter_spec.is_focused(FilterTarget.CLUSTER_ROLE_BINDING, binding.namespace, binding.name),
        )
    else:
        binding_node = add_role_binding_node(
            G, role_binding_key(binding.namespace, binding.name), container, binding.name,
            highlight=filter_spec.is_focused(FilterTarget.ROLE_BINDING, binding.namespace, binding.name),
        )

    role = binding.role
    # role nodes are per binding scope: a ClusterRole bound in two namespaces
    # is drawn once in each
    if role.scope is Scope.CLUSTER:
        role_node = add_cluster_role_node(
            G, cluster_role_key(binding.namespace, role.name), container, role.name,
            highlight=filter_spec.is_focused(FilterTarget.CLUSTER_ROLE, role.namespace, role.name),
            bound_locally=binding.scope is Scope.NAMESPACED,
        )
    else:
        role_node = add_role_node(
            G, role_key(binding.namespace, role.name), container, role.name,
            highlight=filter_spec.is_focused(FilterTarget.ROLE, role.namespace, role.name),
        )
    G.add_edge(binding_node, role_node)

    if render_rules:
        rules = lookup_rules(permissions, binding.namespace, role.name)
        if rules:
            rules_node = add_rules_node(G, rules_key(role_node), container, rules)
            G.add_edge(role_node, rules_node)

    return binding_node


# ---------- Build ----------
def build_graph(permissions, filter_spec, show_legend=True, render_rules=True):
    """
    Build the permission graph for one run.
    Returns: nx.DiGraph (containers in G.graph["containers"])
    """
    G = nx.DiGraph()
    G.graph[CONTAINERS] = {}
    index = GraphIndex()

    # LEGEND
    if show_legend:
        render_legend(G, render_rules)

    # SUBJECTS: service accounts are drawn even when nothing binds them
    if filter_spec.target in (FilterTarget.NONE, FilterTarget.SERVICE_ACCOUNT):
        for namespace in namespaces_to_show(permissions, filter_spec):
            accounts = permissions.service_accounts.get(namespace, {})
            for name in sorted(accounts):
                if filter_spec.should_ignore(name):
                    continue
                existing_or_new_subject_node(G, index, filter_spec, accounts[name])

    # BINDINGS
    for namespace, records in sorted(permissions.all_bindings().items()):
        for binding in resolve_bindings(records, filter_spec):
            if not should_render_binding(binding, filter_spec):
                continue
            binding_node = render_binding_and_role(G, index, permissions, filter_spec, binding, render_rules)
            for subject in binding.subjects:
                if filter_spec.should_ignore(subject.name):
                    continue
                if not should_render_subject(subject, filter_spec):
                    continue
                subject_node = existing_or_new_subject_node(G, index, filter_spec, subject)
                G.add_edge(subject_node, binding_node, dir="back")

    logger.info(
        f"Graph built: {G.number_of_nodes()} nodes, {G.number_of_edges()} edges, "
        f"{len(G.graph[CONTAINERS])} containers"
    )
    return G


# ---------- Export ----------
def graph_to_dict(G):
    return {
        "containers": [{"id": cid, **attrs} for cid, attrs in G.graph.get(CONTAINERS, {}).items()],
        "nodes": [{"id": n, **dict(G.nodes[n])} for n in G.nodes()],
        "edges": [{"source": u, "target": v, **dict(e)} for u, v, e in G.edges(data=True)],
    }


def export_graph_json(G, path="graph.json"):
    """Export a compact containers/nodes/edges JSON for download/debug."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(graph_to_dict(G), f, indent=2)
    return path
