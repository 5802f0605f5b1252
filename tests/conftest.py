# tests/conftest.py
"""Shared kubectl-shaped records and an in-memory record source."""
import types

import pytest


# -------------------------------------------------------------
# Record builders (kubectl get -o json shapes)
# -------------------------------------------------------------
def _meta(name, namespace=None):
    meta = {"name": name}
    if namespace is not None:
        meta["namespace"] = namespace
    return meta


def rule(verbs, resources=(), api_groups=("",), resource_names=(), urls=()):
    r = {"verbs": list(verbs), "apiGroups": list(api_groups)}
    if resources:
        r["resources"] = list(resources)
    if resource_names:
        r["resourceNames"] = list(resource_names)
    if urls:
        r["nonResourceURLs"] = list(urls)
    return r


def service_account(namespace, name):
    return {"kind": "ServiceAccount", "metadata": _meta(name, namespace)}


def role(namespace, name, rules=()):
    return {"kind": "Role", "metadata": _meta(name, namespace), "rules": list(rules)}


def cluster_role(name, rules=()):
    return {"kind": "ClusterRole", "metadata": _meta(name), "rules": list(rules)}


def sa_subject(namespace, name):
    return {"kind": "ServiceAccount", "name": name, "namespace": namespace}


def user(name):
    return {"kind": "User", "apiGroup": "rbac.authorization.k8s.io", "name": name}


def group(name):
    return {"kind": "Group", "apiGroup": "rbac.authorization.k8s.io", "name": name}


def role_binding(namespace, name, role_name, subjects, role_kind="Role"):
    return {
        "kind": "RoleBinding",
        "metadata": _meta(name, namespace),
        "roleRef": {"apiGroup": "rbac.authorization.k8s.io", "kind": role_kind, "name": role_name},
        "subjects": list(subjects),
    }


def cluster_role_binding(name, role_name, subjects):
    return {
        "kind": "ClusterRoleBinding",
        "metadata": _meta(name),
        "roleRef": {"apiGroup": "rbac.authorization.k8s.io", "kind": "ClusterRole", "name": role_name},
        "subjects": list(subjects),
    }


KIND_OF = {
    "ServiceAccount": "serviceaccounts",
    "Role": "roles",
    "RoleBinding": "rolebindings",
    "ClusterRole": "clusterroles",
    "ClusterRoleBinding": "clusterrolebindings",
}


class FakeClient:
    """Answers get() from a list of records, recording every call."""

    def __init__(self, items):
        self.items = list(items)
        self.calls = []

    def get(self, kind, namespace=None, names=None):
        self.calls.append((kind, namespace, list(names) if names else None))
        docs = [i for i in self.items if KIND_OF[i["kind"]] == kind]
        if namespace:
            docs = [d for d in docs if d["metadata"].get("namespace") == namespace]
        if names:
            docs = [d for d in docs if d["metadata"]["name"] in names]
            if len(names) == 1 and len(docs) == 1:
                return docs[0]
        return {"apiVersion": "v1", "kind": "List", "items": docs}


# -------------------------------------------------------------
# FIXTURES
# -------------------------------------------------------------
@pytest.fixture
def k8s():
    return types.SimpleNamespace(
        rule=rule,
        service_account=service_account,
        role=role,
        cluster_role=cluster_role,
        sa_subject=sa_subject,
        user=user,
        group=group,
        role_binding=role_binding,
        cluster_role_binding=cluster_role_binding,
        client=FakeClient,
    )


@pytest.fixture
def cluster_items():
    """A small cluster: two namespaces, a few bindings, and some system: noise."""
    return [
        service_account("ci", "deployer"),
        service_account("ci", "builder"),
        service_account("prod", "app"),
        service_account("kube-system", "system:coredns"),
        role("ci", "pod-reader", [rule(["get", "list"], ["pods"])]),
        role_binding("ci", "read-pods", "pod-reader", [sa_subject("ci", "deployer")]),
        role_binding("ci", "ci-view", "view", [sa_subject("ci", "builder")], role_kind="ClusterRole"),
        role_binding("prod", "app-edit", "edit", [sa_subject("prod", "app"), user("alice")], role_kind="ClusterRole"),
        cluster_role("view", [rule(["get", "list", "watch"], ["pods", "services"])]),
        cluster_role("edit", [rule(["create", "update"], ["deployments"], api_groups=["apps"])]),
        cluster_role("system:node", [rule(["get"], ["nodes"])]),
        cluster_role_binding("cluster-viewers", "view", [group("devs"), sa_subject("ci", "deployer")]),
        cluster_role_binding("system:node", "system:node", [group("system:nodes")]),
    ]


@pytest.fixture
def cluster_client(cluster_items):
    return FakeClient(cluster_items)
