"""Identity, membership and per-request context records."""

from dataclasses import dataclass
from enum import Enum
from typing import TypeVar
from uuid import UUID

from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)


class OrgRole(str, Enum):
    """Role of a user inside an organization."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]


_ROLE_RANK = {OrgRole.OWNER: 3, OrgRole.ADMIN: 2, OrgRole.MEMBER: 1}


def roles_at_least(role: OrgRole) -> frozenset[OrgRole]:
    """All roles with at least the privilege of ``role``.

    Convenience for route declarations; the gate itself only checks
    set membership.
    """
    return frozenset(r for r in OrgRole if r.rank >= role.rank)


@dataclass(frozen=True)
class Identity:
    """Authenticated user, valid for one request."""

    id: UUID
    email: str


@dataclass(frozen=True)
class Membership:
    """The (organization, user, role) fact granting scoped access."""

    organization_id: UUID
    user_id: UUID
    role: OrgRole


@dataclass
class RequestContext:
    """Per-request carrier threaded through the pipeline into the handler.

    Owned by exactly one request and discarded when it ends.
    """

    request_id: str
    identity: Identity | None = None
    membership: Membership | None = None
    params: BaseModel | None = None
    body: BaseModel | None = None
    query: BaseModel | None = None

    @property
    def user_id(self) -> UUID:
        if self.identity is None:
            raise RuntimeError("Route is public; no identity on context")
        return self.identity.id

    @property
    def org_id(self) -> UUID:
        if self.membership is None:
            raise RuntimeError("Route is not organization scoped")
        return self.membership.organization_id

    @property
    def role(self) -> OrgRole:
        if self.membership is None:
            raise RuntimeError("Route is not organization scoped")
        return self.membership.role

    def params_as(self, schema: type[M]) -> M:
        """Validated path params, typed as ``schema``."""
        return _narrow(self.params, schema, "params")

    def body_as(self, schema: type[M]) -> M:
        """Validated body, typed as ``schema``."""
        return _narrow(self.body, schema, "body")

    def query_as(self, schema: type[M]) -> M:
        """Validated query, typed as ``schema``."""
        return _narrow(self.query, schema, "query")


def _narrow(value: BaseModel | None, schema: type[M], location: str) -> M:
    if not isinstance(value, schema):
        raise RuntimeError(
            f"Route {location} is {type(value).__name__}, not {schema.__name__}"
        )
    return value
