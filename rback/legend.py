# rback/legend.py
"""Static legend explaining the node shapes. Independent of fetched data."""
from rback.nodes import (
    add_cluster_role_binding_node,
    add_cluster_role_node,
    add_container,
    add_role_binding_node,
    add_role_node,
    add_rules_node,
    add_subject_node,
)

LEGEND = "legend"
LEGEND_NAMESPACE = "legend/namespace"
PREFIX = "legend:"


def render_legend(G, render_rules=True):
    legend = add_container(G, LEGEND, "LEGEND")
    namespace = add_container(G, LEGEND_NAMESPACE, "Namespace", parent=legend, style="dashed")

    subject = add_subject_node(G, PREFIX + "Kind-Subject", namespace, "Kind", "Subject")

    role = add_role_node(G, PREFIX + "r-ns/Role", namespace, "Role")
    # bound by a (namespaced!) RoleBinding
    cluster_role_bound_locally = add_cluster_role_node(
        G, PREFIX + "cr-ns/ClusterRole", namespace, "ClusterRole", bound_locally=True)
    cluster_role = add_cluster_role_node(G, PREFIX + "cr-/ClusterRole", legend, "ClusterRole")

    role_binding = add_role_binding_node(G, PREFIX + "rb-RoleBinding", namespace, "RoleBinding")
    G.add_edge(subject, role_binding, dir="back")
    G.add_edge(role_binding, role)

    role_binding2 = add_role_binding_node(G, PREFIX + "rb-RoleBinding-to-ClusterRole", namespace, "RoleBinding")
    G.add_edge(subject, role_binding2, dir="back")
    G.add_edge(role_binding2, cluster_role_bound_locally)

    cluster_role_binding = add_cluster_role_binding_node(
        G, PREFIX + "crb-ClusterRoleBinding", legend, "ClusterRoleBinding")
    G.add_edge(subject, cluster_role_binding, dir="back")
    G.add_edge(cluster_role_binding, cluster_role)

    if render_rules:
        ns_rules = add_rules_node(G, PREFIX + "rules-ns/Role", namespace, "Namespace-scoped\naccess rules")
        G.add_edge(role, ns_rules)

        ns_rules2 = add_rules_node(G, PREFIX + "rules-ns/ClusterRole", namespace, "Namespace-scoped\naccess rules")
        G.add_edge(cluster_role_bound_locally, ns_rules2)

        cluster_rules = add_rules_node(G, PREFIX + "rules-/ClusterRole", legend, "Cluster-scoped\naccess rules")
        G.add_edge(cluster_role, cluster_rules)

    return G
