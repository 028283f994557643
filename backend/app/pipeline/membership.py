"""Organization membership resolution and the role gate."""

import logging
from collections.abc import Collection
from uuid import UUID

from backend.app.db.repositories import MembershipStore
from backend.app.errors import AccessFailure, AuthorizationError, NotFoundError
from backend.app.pipeline.context import Identity, Membership, OrgRole
from backend.app.pipeline.result import Err, Ok, Result

logger = logging.getLogger(__name__)


class MembershipResolver:
    """Resolves an identity's membership in the organization named by the path."""

    def __init__(self, store: MembershipStore) -> None:
        self._store = store

    async def resolve(
        self,
        identity: Identity,
        org_id: UUID,
        *,
        reveal_missing_org: bool = False,
    ) -> Result[Membership]:
        """Look up the membership for (org_id, identity).

        By default a missing organization and a non-member get the same
        not-a-member answer so organization existence is not leaked. With
        ``reveal_missing_org`` a missing organization yields ``NotFoundError``.

        Args:
            identity: Verified identity
            org_id: Organization ID from the validated path params
            reveal_missing_org: Distinguish "no such org" from "not a member"

        Returns:
            ``Ok(Membership)``, ``Err(AuthorizationError)`` or ``Err(NotFoundError)``
        """
        membership = await self._store.get_membership(org_id, identity.id)
        if membership is not None:
            return Ok(membership)

        if reveal_missing_org and not await self._store.organization_exists(org_id):
            return Err(NotFoundError("Organization not found", reason="organization_not_found"))

        logger.debug("User %s is not a member of org %s", identity.id, org_id)
        return Err(
            AuthorizationError(
                "You are not a member of this organization",
                reason=AccessFailure.not_a_member,
            )
        )


def check_role(membership: Membership, allowed: Collection[OrgRole]) -> Result[Membership]:
    """Allow iff the resolved role is in ``allowed``."""
    if membership.role in allowed:
        return Ok(membership)
    return Err(
        AuthorizationError(
            "Insufficient permissions",
            reason=AccessFailure.insufficient_role,
        )
    )
