# rback/nodes.py
"""
Graph description primitives shared by the assembler and the legend.

Nodes live in a networkx.DiGraph. Every node carries:
  kind       one of the kind constants below
  label      display text (may contain newlines)
  container  scope container id, None for the root graph
  highlight  focus flag
Scope containers are kept in G.graph["containers"] as
{id: {"label", "parent", "style"}}, in creation order (parents first).
"""
CONTAINERS = "containers"

SUBJECT = "subject"
ROLE_BINDING = "rolebinding"
CLUSTER_ROLE_BINDING = "clusterrolebinding"
ROLE = "role"
CLUSTER_ROLE = "clusterrole"
RULES = "rules"


# ---------- Keys ----------
def subject_key(kind, namespace, name):
    return f"{kind}-{namespace}/{name}"


def role_binding_key(namespace, name):
    return f"rb-{namespace}/{name}"


def cluster_role_binding_key(name):
    return f"crb-{name}"


def role_key(namespace, name):
    return f"r-{namespace}/{name}"


def cluster_role_key(namespace, name):
    return f"cr-{namespace}/{name}"


def rules_key(role_node):
    return f"rules-{role_node}"


def namespace_container_id(namespace):
    return f"namespace/{namespace}"


# ---------- Containers ----------
def add_container(G, cid, label, parent=None, style=None):
    G.graph.setdefault(CONTAINERS, {})[cid] = {"label": label, "parent": parent, "style": style}
    return cid


# ---------- Nodes ----------
def add_subject_node(G, key, container, kind, name, highlight=False):
    G.add_node(key, kind=SUBJECT, subject_kind=kind, label=f"{name}\n({kind})",
               container=container, highlight=bool(highlight))
    return key


def add_role_binding_node(G, key, container, name, highlight=False):
    G.add_node(key, kind=ROLE_BINDING, label=name, container=container, highlight=bool(highlight))
    return key


def add_cluster_role_binding_node(G, key, container, name, highlight=False):
    G.add_node(key, kind=CLUSTER_ROLE_BINDING, label=name, container=container, highlight=bool(highlight))
    return key


def add_role_node(G, key, container, name, highlight=False):
    G.add_node(key, kind=ROLE, label=name, container=container, highlight=bool(highlight))
    return key


def add_cluster_role_node(G, key, container, name, highlight=False, bound_locally=False):
    # a ClusterRole pulled into a namespace by a RoleBinding is drawn dashed
    G.add_node(key, kind=CLUSTER_ROLE, label=name, container=container,
               highlight=bool(highlight), dashed=bool(bound_locally))
    return key


def add_rules_node(G, key, container, rules):
    G.add_node(key, kind=RULES, label=rules, container=container, highlight=False)
    return key
