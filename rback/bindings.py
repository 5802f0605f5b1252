# rback/bindings.py
"""
Binding Index: resolve RoleBinding / ClusterRoleBinding records into typed
Binding values (target role reference, binding scope, subject list).
"""
import logging

from rback import config
from rback.errors import AssemblyError
from rback.models import Binding, CLUSTER_SCOPE, RoleReference, Scope, scope_of

logger = logging.getLogger("bindings")
logger.setLevel(config.LOG_LEVEL)
if not logger.handlers:
    logger.addHandler(logging.StreamHandler())

ROLE_KIND = "Role"
CLUSTER_ROLE_KIND = "ClusterRole"


def resolve_role_reference(record) -> RoleReference:
    """
    Work out where the referenced role lives.

    An explicit roleRef.namespace wins. Otherwise a 'Role' reference lives in
    the binding's own namespace, and a 'ClusterRole' reference (or one without
    kind) is cluster-scoped, even when the binding itself is namespaced.
    A kind-Role reference without roleRef.namespace therefore resolves to the
    binding namespace, not to the cluster scope an empty namespace would imply.
    """
    ref = record.role_ref
    binding_ns = record.metadata.namespace
    if ref.namespace:
        return RoleReference(name=ref.name, namespace=ref.namespace)
    if ref.kind == ROLE_KIND:
        if scope_of(binding_ns) is Scope.CLUSTER:
            raise AssemblyError(
                f"ClusterRoleBinding {record.metadata.name} references Role {ref.name}, "
                "which needs a namespace"
            )
        return RoleReference(name=ref.name, namespace=binding_ns)
    if ref.kind in (None, CLUSTER_ROLE_KIND):
        return RoleReference(name=ref.name, namespace=CLUSTER_SCOPE)
    raise AssemblyError(
        f"Binding {binding_ns}/{record.metadata.name} has an unsupported roleRef kind {ref.kind!r}"
    )


def resolve_binding(record):
    """Return the typed Binding, or None for a binding without subjects."""
    if record.subjects is None:
        return None
    return Binding(
        name=record.metadata.name,
        namespace=record.metadata.namespace,
        role=resolve_role_reference(record),
        subjects=record.subjects,
    )


def resolve_bindings(records, filter_spec=None):
    """
    Resolve a {name: BindingRecord} mapping into a name-ordered list of Bindings.
    Bindings to nobody and bindings to an ignored role are left out.
    """
    results = []
    for name in sorted(records):
        binding = resolve_binding(records[name])
        if binding is None:
            logger.debug(f"Skipping binding {name}: no subjects")
            continue
        if filter_spec is not None and filter_spec.should_ignore(binding.role.name):
            logger.debug(f"Skipping binding {name}: role {binding.role.name} is ignored")
            continue
        results.append(binding)
    return results
