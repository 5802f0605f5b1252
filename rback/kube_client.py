# rback/kube_client.py
"""
Record sources for rback.

Both clients expose the same call:

    get(kind, namespace=None, names=None) -> dict

and answer the way `kubectl get <kind> --output json` does: a single record
when exactly one name was asked for, otherwise a {"kind": "List", "items": [...]}
envelope. namespace=None means all namespaces.
"""
import logging
import os

from kubernetes import client as k8s_client
from kubernetes import config as kube_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from rback import config
from rback.errors import ResolutionError, RetrievalError
from rback.snapshot import load_snapshot

logger = logging.getLogger("kube_client")
logger.setLevel(config.LOG_LEVEL)
if not logger.handlers:
    logger.addHandler(logging.StreamHandler())

SERVICE_ACCOUNTS = "serviceaccounts"
ROLES = "roles"
ROLE_BINDINGS = "rolebindings"
CLUSTER_ROLES = "clusterroles"
CLUSTER_ROLE_BINDINGS = "clusterrolebindings"

NAMESPACED_KINDS = (SERVICE_ACCOUNTS, ROLES, ROLE_BINDINGS)
CLUSTER_KINDS = (CLUSTER_ROLES, CLUSTER_ROLE_BINDINGS)

# object "kind" field -> resource kind, for snapshot dumps
OBJECT_KINDS = {
    "ServiceAccount": SERVICE_ACCOUNTS,
    "Role": ROLES,
    "RoleBinding": ROLE_BINDINGS,
    "ClusterRole": CLUSTER_ROLES,
    "ClusterRoleBinding": CLUSTER_ROLE_BINDINGS,
}


def _as_list(items):
    return {"kind": "List", "items": list(items)}


def _answer(docs, names):
    if names and len(names) == 1 and len(docs) == 1:
        return docs[0]
    return _as_list(docs)


def _metadata(item):
    meta = item.get("metadata") if isinstance(item, dict) else None
    return meta if isinstance(meta, dict) else {}


# ---------- Live cluster ----------
def _new_api_client(kubeconfig=None, context=None):
    # inside a pod without an explicit kubeconfig, use the mounted service account
    if not kubeconfig and not context and os.getenv("KUBERNETES_SERVICE_HOST"):
        configuration = k8s_client.Configuration()
        kube_config.load_incluster_config(client_configuration=configuration)
        return k8s_client.ApiClient(configuration)
    return kube_config.new_client_from_config(config_file=kubeconfig, context=context)


class KubeClient:
    """Query RBAC records from a live cluster through the kubernetes API."""

    def __init__(self, kubeconfig=None, context=None, api_client=None):
        if api_client is None:
            try:
                api_client = _new_api_client(kubeconfig, context)
            except (ConfigException, OSError) as e:
                raise RetrievalError(f"Can't load kubernetes configuration: {e}") from e
        self.api_client = api_client
        self.core = k8s_client.CoreV1Api(api_client)
        self.rbac = k8s_client.RbacAuthorizationV1Api(api_client)

    def _operations(self, kind):
        """(list all, list in namespace, read one) for a resource kind."""
        ops = {
            SERVICE_ACCOUNTS: (
                self.core.list_service_account_for_all_namespaces,
                self.core.list_namespaced_service_account,
                self.core.read_namespaced_service_account,
            ),
            ROLES: (
                self.rbac.list_role_for_all_namespaces,
                self.rbac.list_namespaced_role,
                self.rbac.read_namespaced_role,
            ),
            ROLE_BINDINGS: (
                self.rbac.list_role_binding_for_all_namespaces,
                self.rbac.list_namespaced_role_binding,
                self.rbac.read_namespaced_role_binding,
            ),
            CLUSTER_ROLES: (self.rbac.list_cluster_role, None, self.rbac.read_cluster_role),
            CLUSTER_ROLE_BINDINGS: (self.rbac.list_cluster_role_binding, None, self.rbac.read_cluster_role_binding),
        }
        if kind not in ops:
            raise ValueError(f"unknown resource kind {kind!r}")
        return ops[kind]

    def _to_dict(self, obj):
        return self.api_client.sanitize_for_serialization(obj)

    def get(self, kind, namespace=None, names=None):
        list_all, list_namespaced, read = self._operations(kind)
        namespaced = kind in NAMESPACED_KINDS
        names = list(names or [])
        try:
            if names and (namespace or not namespaced):
                if namespaced:
                    objs = [read(n, namespace) for n in names]
                else:
                    objs = [read(n) for n in names]
                return _answer([self._to_dict(o) for o in objs], names)

            if namespaced and namespace:
                resp = list_namespaced(namespace)
            else:
                resp = list_all()
            docs = [self._to_dict(o) for o in (resp.items or [])]
        except ApiException as e:
            scope = f" in namespace {namespace}" if namespace else ""
            raise RetrievalError(f"Can't get {kind}{scope}: {e.status} {e.reason}") from e
        except HTTPError as e:
            raise RetrievalError(f"Can't reach the kubernetes API for {kind}: {e}") from e

        if names:
            docs = [d for d in docs if _metadata(d).get("name") in names]
        logger.debug(f"Fetched {len(docs)} {kind} (namespace={namespace or '*'})")
        return _as_list(docs)


# ---------- Offline snapshot ----------
def _group_by_kind(doc, path):
    items = doc.get("items") if "items" in doc else [doc]
    if not isinstance(items, list):
        raise ResolutionError(f"Snapshot {path}: 'items' must be a list")
    grouped = {kind: [] for kind in OBJECT_KINDS.values()}
    skipped = 0
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get("kind"), str):
            raise ResolutionError(f"Snapshot {path}: every item needs a string 'kind'")
        kind = OBJECT_KINDS.get(item["kind"])
        if kind is None:
            skipped += 1
            continue
        grouped[kind].append(item)
    if skipped:
        logger.debug(f"Snapshot {path}: ignored {skipped} non-RBAC items")
    return grouped


class SnapshotClient:
    """Serve RBAC records from a `kubectl get ... -o json` dump instead of a live cluster."""

    def __init__(self, path, key=None):
        self.path = path
        self._records = _group_by_kind(load_snapshot(path, key=key), path)

    def get(self, kind, namespace=None, names=None):
        if kind not in self._records:
            raise ValueError(f"unknown resource kind {kind!r}")
        docs = self._records[kind]
        if namespace and kind in NAMESPACED_KINDS:
            docs = [d for d in docs if _metadata(d).get("namespace") == namespace]
        if names and kind in NAMESPACED_KINDS and not namespace:
            return _as_list(d for d in docs if _metadata(d).get("name") in names)
        if names:
            by_name = {_metadata(d).get("name"): d for d in docs}
            missing = [n for n in names if n not in by_name]
            if missing:
                scope = f" in namespace {namespace}" if namespace else ""
                raise RetrievalError(f"{kind} {', '.join(missing)} not found{scope} in snapshot {self.path}")
            return _answer([by_name[n] for n in names], names)
        return _as_list(docs)
