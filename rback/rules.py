# rback/rules.py
"""
Rule Formatter: human-readable summaries of a role's access rules.

One line per rule, in the order the role lists them:

    verbs [resources] ["resourceNames"] [nonResourceURLs] [(apiGroups)]
"""
from rback.models import CLUSTER_SCOPE


def _joined(values):
    return ",".join(values or ())


def to_human_readable_rule(rule) -> str:
    line = _joined(rule.verbs)
    resources = _joined(rule.resources)
    if resources:
        line += f" {resources}"
    resource_names = _joined(rule.resource_names)
    if resource_names:
        line += f' "{resource_names}"'
    urls = _joined(rule.non_resource_urls)
    if urls:
        line += f" {urls}"
    # the core API group is "", so [""] renders as nothing
    api_groups = _joined(rule.api_groups)
    if api_groups:
        line += f" ({api_groups})"
    return line


def format_rules(rules) -> str:
    """Each line is newline-terminated so summaries can be concatenated."""
    return "".join(to_human_readable_rule(r) + "\n" for r in rules)


def find_access_rules(roles, role_name) -> str:
    role = (roles or {}).get(role_name)
    if role is None:
        return ""
    return format_rules(role.rules)


def lookup_rules(permissions, namespace, role_name) -> str:
    """
    Rules reachable through a binding in `namespace` that names `role_name`.

    Namespaced roles of that namespace are checked first (not for the cluster
    scope), cluster roles always; cluster rules come first in the result.
    """
    rules = ""
    if namespace != CLUSTER_SCOPE:
        rules = find_access_rules(permissions.roles.get(namespace), role_name)
    cluster_rules = find_access_rules(permissions.cluster_roles, role_name)
    return cluster_rules + rules
