# rback/models.py
"""
Typed RBAC values.

Two layers live here:
  - wire records (ObjectMeta, RoleRefRecord, RoleRecord, BindingRecord) that
    validate the JSON documents returned by the record source
  - domain values (Identity, Role, RoleReference, Binding, Permissions) that
    the graph assembler works on

Scope is always derived from the namespace: an empty namespace is the
cluster scope.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Dict, List, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

CLUSTER_SCOPE = ""


class Scope(str, Enum):
    NAMESPACED = "namespaced"
    CLUSTER = "cluster"


def scope_of(namespace: str) -> Scope:
    return Scope.CLUSTER if namespace == CLUSTER_SCOPE else Scope.NAMESPACED


class SubjectKind(str, Enum):
    SERVICE_ACCOUNT = "ServiceAccount"
    USER = "User"
    GROUP = "Group"


def _none_to_empty(v):
    return CLUSTER_SCOPE if v is None else v


# metadata.namespace / subject.namespace: null or absent means cluster scope
Namespace = Annotated[str, BeforeValidator(_none_to_empty)]


# ---------- Wire records ----------
class ObjectMeta(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    namespace: Namespace = CLUSTER_SCOPE


class PolicyRule(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    verbs: Tuple[str, ...] = ()
    resources: Tuple[str, ...] = ()
    resource_names: Tuple[str, ...] = Field(default=(), alias="resourceNames")
    non_resource_urls: Tuple[str, ...] = Field(default=(), alias="nonResourceURLs")
    api_groups: Tuple[str, ...] = Field(default=(), alias="apiGroups")

    @field_validator("*", mode="before")
    @classmethod
    def _null_is_empty(cls, v):
        return () if v is None else v


class RoleRefRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    name: str
    kind: Optional[str] = None
    api_group: Optional[str] = Field(default=None, alias="apiGroup")
    namespace: Namespace = CLUSTER_SCOPE


class Identity(BaseModel):
    """A subject: service account, user or group. Hashable, used as a node index key."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    kind: SubjectKind
    name: str
    namespace: Namespace = CLUSTER_SCOPE

    @property
    def scope(self) -> Scope:
        return scope_of(self.namespace)


class ServiceAccountRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    metadata: ObjectMeta


class RoleRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    metadata: ObjectMeta
    rules: Tuple[PolicyRule, ...] = ()

    @field_validator("rules", mode="before")
    @classmethod
    def _null_rules(cls, v):
        # aggregated ClusterRoles come back with rules: null
        return () if v is None else v


class BindingRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    metadata: ObjectMeta
    role_ref: RoleRefRecord = Field(alias="roleRef")
    subjects: Optional[Tuple[Identity, ...]] = None


# ---------- Domain values ----------
class Role(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str = CLUSTER_SCOPE
    rules: Tuple[PolicyRule, ...] = ()

    @property
    def scope(self) -> Scope:
        return scope_of(self.namespace)


class RoleReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str = CLUSTER_SCOPE

    @property
    def scope(self) -> Scope:
        return scope_of(self.namespace)


class Binding(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str
    role: RoleReference
    subjects: Tuple[Identity, ...] = ()

    @property
    def scope(self) -> Scope:
        return scope_of(self.namespace)


@dataclass
class Permissions:
    """Everything fetched for one run; keyed namespace -> name -> value."""
    service_accounts: Dict[str, Dict[str, Identity]] = field(default_factory=dict)
    roles: Dict[str, Dict[str, Role]] = field(default_factory=dict)
    role_bindings: Dict[str, Dict[str, BindingRecord]] = field(default_factory=dict)
    cluster_roles: Dict[str, Role] = field(default_factory=dict)
    cluster_role_bindings: Dict[str, BindingRecord] = field(default_factory=dict)

    def all_bindings(self) -> Dict[str, Dict[str, BindingRecord]]:
        """Namespaced bindings plus cluster bindings under the cluster scope key."""
        merged = {ns: dict(items) for ns, items in self.role_bindings.items()}
        merged[CLUSTER_SCOPE] = dict(self.cluster_role_bindings)
        return merged

    def counts(self) -> Dict[str, int]:
        return {
            "serviceaccounts": sum(len(v) for v in self.service_accounts.values()),
            "roles": sum(len(v) for v in self.roles.values()),
            "rolebindings": sum(len(v) for v in self.role_bindings.values()),
            "clusterroles": len(self.cluster_roles),
            "clusterrolebindings": len(self.cluster_role_bindings),
        }


def namespaces_of(*collections: Dict[str, dict]) -> List[str]:
    found = set()
    for c in collections:
        found.update(c.keys())
    return sorted(found)
