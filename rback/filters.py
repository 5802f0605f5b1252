# rback/filters.py
"""
Focus filter: which entity kind the run is about, and which namespaces and
names it is restricted to.

An empty namespace set or an empty name set means "match everything".
Highlighting, on the other hand, only applies to names that were asked for
explicitly.
"""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple

from rback.models import SubjectKind


class FilterTarget(str, Enum):
    NONE = ""
    SERVICE_ACCOUNT = "serviceaccount"
    ROLE = "role"
    CLUSTER_ROLE = "clusterrole"
    ROLE_BINDING = "rolebinding"
    CLUSTER_ROLE_BINDING = "clusterrolebinding"


KIND_ALIASES = {
    "sa": FilterTarget.SERVICE_ACCOUNT,
    "serviceaccounts": FilterTarget.SERVICE_ACCOUNT,
    "rb": FilterTarget.ROLE_BINDING,
    "rolebindings": FilterTarget.ROLE_BINDING,
    "crb": FilterTarget.CLUSTER_ROLE_BINDING,
    "clusterrolebindings": FilterTarget.CLUSTER_ROLE_BINDING,
    "r": FilterTarget.ROLE,
    "roles": FilterTarget.ROLE,
    "cr": FilterTarget.CLUSTER_ROLE,
    "clusterroles": FilterTarget.CLUSTER_ROLE,
}

ALL_NAMESPACES = "*"
DISABLE_PREFIXES = "none"


def normalize_kind(kind: Optional[str]) -> FilterTarget:
    """Map a resource-kind token (alias, plural or canonical name) to a FilterTarget."""
    if not kind:
        return FilterTarget.NONE
    token = kind.strip().lower()
    if token in KIND_ALIASES:
        return KIND_ALIASES[token]
    try:
        return FilterTarget(token)
    except ValueError:
        raise ValueError(
            f"unsupported resource kind '{kind}' "
            f"(expected one of: {', '.join(sorted(KIND_ALIASES))})"
        ) from None


def split_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(p.strip() for p in value.split(",") if p.strip())


def target_for_subject(kind: SubjectKind) -> Optional[FilterTarget]:
    if kind is SubjectKind.SERVICE_ACCOUNT:
        return FilterTarget.SERVICE_ACCOUNT
    if kind in (SubjectKind.USER, SubjectKind.GROUP):
        return None
    raise ValueError(f"unhandled subject kind {kind!r}")


@dataclass(frozen=True)
class FilterSpec:
    target: FilterTarget = FilterTarget.NONE
    namespaces: FrozenSet[str] = frozenset()
    names: FrozenSet[str] = frozenset()
    ignored_prefixes: Tuple[str, ...] = ()

    @classmethod
    def from_args(cls, kind=None, names: Iterable[str] = (), namespaces: Optional[str] = None,
                  ignore_prefixes: Optional[str] = None):
        """
        Build the filter from invocation parameters:
          - kind: resource-kind token, normalized via KIND_ALIASES
          - names: resource names (empty = all)
          - namespaces: comma-delimited list, empty or '*' = all
          - ignore_prefixes: comma-delimited list, 'none' disables exclusion
        """
        ns = split_csv(namespaces)
        if ALL_NAMESPACES in ns:
            ns = ()
        if ignore_prefixes is not None and ignore_prefixes.strip().lower() == DISABLE_PREFIXES:
            prefixes = ()
        else:
            prefixes = split_csv(ignore_prefixes)
        return cls(
            target=normalize_kind(kind),
            namespaces=frozenset(ns),
            names=frozenset(n for n in names if n),
            ignored_prefixes=prefixes,
        )

    @property
    def all_namespaces(self) -> bool:
        return not self.namespaces

    @property
    def all_names(self) -> bool:
        return not self.names

    def matches_namespace(self, namespace: str) -> bool:
        return self.all_namespaces or namespace in self.namespaces

    def matches_name(self, name: str) -> bool:
        return self.all_names or name in self.names

    def matches(self, namespace: str, name: str) -> bool:
        return self.matches_namespace(namespace) and self.matches_name(name)

    def should_ignore(self, name: str) -> bool:
        return any(name.startswith(p) for p in self.ignored_prefixes)

    def is_focused(self, kind: Optional[FilterTarget], namespace: str, name: str) -> bool:
        # only explicitly requested names are highlighted
        return (
            kind is not None
            and self.target is kind
            and self.matches_namespace(namespace)
            and name in self.names
        )
