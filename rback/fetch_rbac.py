# rback/fetch_rbac.py
"""
Record Resolver: turns the raw documents returned by a record source into
typed RBAC values.

- Accepts a single record or a List envelope, as JSON text or parsed dict
- Validates every record against the wire schema once, here; anything
  malformed raises ResolutionError and aborts the run
- Drops records whose name starts with an ignored prefix
- Service accounts are narrowed by namespace (and by name when the run is
  about service accounts); everything else is fetched cluster-wide

fetch_permissions(client, filter_spec) -> Permissions
"""
import json
import logging

from pydantic import ValidationError

from rback import config
from rback.errors import ResolutionError
from rback.filters import FilterSpec, FilterTarget
from rback.kube_client import (
    CLUSTER_ROLE_BINDINGS,
    CLUSTER_ROLES,
    ROLE_BINDINGS,
    ROLES,
    SERVICE_ACCOUNTS,
)
from rback.models import (
    BindingRecord,
    Identity,
    Permissions,
    Role,
    RoleRecord,
    ServiceAccountRecord,
    SubjectKind,
)

logger = logging.getLogger("fetch_rbac")
logger.setLevel(config.LOG_LEVEL)
if not logger.handlers:
    logger.addHandler(logging.StreamHandler())


# ---------- Record -> resolved form ----------
def _service_account(rec):
    return Identity(kind=SubjectKind.SERVICE_ACCOUNT, namespace=rec.metadata.namespace, name=rec.metadata.name)


def _role(rec):
    return Role(name=rec.metadata.name, namespace=rec.metadata.namespace, rules=rec.rules)


# bindings stay as validated records; the Binding Index resolves them
RESOLVERS = {
    SERVICE_ACCOUNTS: (ServiceAccountRecord, _service_account),
    ROLES: (RoleRecord, _role),
    ROLE_BINDINGS: (BindingRecord, None),
    CLUSTER_ROLES: (RoleRecord, _role),
    CLUSTER_ROLE_BINDINGS: (BindingRecord, None),
}


# ---------- Payload helpers ----------
def _parse_payload(payload, kind):
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ResolutionError(f"Response for {kind} is not valid UTF-8: {e}") from e
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ResolutionError(f"Response for {kind} is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ResolutionError(f"Response for {kind} must be a JSON object, got {type(payload).__name__}")
    return payload


def _items(doc, kind):
    """Normalize a single record or a List envelope to a list of records."""
    doc_kind = doc.get("kind")
    if "items" in doc and (doc_kind is None or str(doc_kind).endswith("List")):
        items = doc["items"] or []
        if not isinstance(items, list):
            raise ResolutionError(f"Response for {kind}: 'items' must be a list")
        return items
    return [doc]


def _describe(err):
    parts = []
    for e in err.errors()[:3]:
        loc = ".".join(str(p) for p in e.get("loc", ()))
        parts.append(f"{loc}: {e.get('msg')}")
    return "; ".join(parts)


def _resolve(item, kind):
    model, _ = RESOLVERS[kind]
    try:
        return model.model_validate(item)
    except ValidationError as e:
        name = item.get("metadata", {}).get("name") if isinstance(item, dict) and isinstance(item.get("metadata"), dict) else None
        label = f" {name}" if name else ""
        raise ResolutionError(f"Malformed {kind} record{label}: {_describe(e)}") from e


def _ignored(filter_spec, kind, name):
    if filter_spec is not None and filter_spec.should_ignore(name):
        logger.debug(f"Ignoring {kind} {name} (matches an ignored prefix)")
        return True
    return False


# ---------- Resolvers ----------
def get_namespaced_resources(client, kind, namespaces=(), names=(), filter_spec=None):
    """
    Resolve a namespaced kind into {namespace: {name: resolved}}.
    An empty namespace selection queries all namespaces in one call.
    """
    _, convert = RESOLVERS[kind]
    names = sorted(names)
    result = {}
    for namespace in sorted(namespaces) or [None]:
        payload = client.get(kind, namespace=namespace, names=names if namespace else None)
        for item in _items(_parse_payload(payload, kind), kind):
            rec = _resolve(item, kind)
            meta = rec.metadata
            if not meta.namespace:
                raise ResolutionError(f"{kind} record {meta.name} has no metadata.namespace")
            if namespace is None and names and meta.name not in names:
                continue
            if _ignored(filter_spec, kind, meta.name):
                continue
            result.setdefault(meta.namespace, {})[meta.name] = convert(rec) if convert else rec
    return result


def get_cluster_resources(client, kind, filter_spec=None):
    """Resolve a cluster-scoped kind into {name: resolved}."""
    _, convert = RESOLVERS[kind]
    payload = client.get(kind)
    result = {}
    for item in _items(_parse_payload(payload, kind), kind):
        rec = _resolve(item, kind)
        name = rec.metadata.name
        if _ignored(filter_spec, kind, name):
            continue
        result[name] = convert(rec) if convert else rec
    return result


def fetch_permissions(client, filter_spec: FilterSpec) -> Permissions:
    """
    Fetch and resolve every RBAC kind, sequentially:
    service accounts, roles, role bindings, cluster roles, cluster role bindings.
    """
    sa_names = filter_spec.names if filter_spec.target is FilterTarget.SERVICE_ACCOUNT else ()

    permissions = Permissions(
        service_accounts=get_namespaced_resources(client, SERVICE_ACCOUNTS, filter_spec.namespaces, sa_names, filter_spec),
        roles=get_namespaced_resources(client, ROLES, filter_spec=filter_spec),
        role_bindings=get_namespaced_resources(client, ROLE_BINDINGS, filter_spec=filter_spec),
        cluster_roles=get_cluster_resources(client, CLUSTER_ROLES, filter_spec),
        cluster_role_bindings=get_cluster_resources(client, CLUSTER_ROLE_BINDINGS, filter_spec),
    )
    logger.info(f"Fetched RBAC records: {permissions.counts()}")
    return permissions
