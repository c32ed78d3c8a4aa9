"""
Access decision pipeline.

Composes credential verification, membership resolution and role
authorization into one fixed, short-circuiting chain. Each stage returns a
new immutable context and the next stage only ever receives that value, so
a later stage cannot run unless every earlier one succeeded.
"""

from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.middleware.authentication import ActorContext, CredentialVerifier
from core.middleware.authorization import (
    AccessLevel,
    MemberContext,
    Operation,
    RoleAuthorizer,
    TenantMembershipResolver,
)

AccessContext = Union[None, ActorContext, MemberContext]


class AccessPipeline:
    """Runs the stages an operation's access level calls for, in order."""

    def __init__(
        self,
        verifier: CredentialVerifier,
        resolver: Optional[TenantMembershipResolver] = None,
        authorizer: Optional[RoleAuthorizer] = None,
    ):
        self.verifier = verifier
        self.resolver = resolver or TenantMembershipResolver()
        self.authorizer = authorizer or RoleAuthorizer()

    @classmethod
    def from_settings(cls, settings: Settings) -> "AccessPipeline":
        return cls(
            CredentialVerifier(
                jwt_secret=settings.jwt_secret_key,
                jwt_algorithm=settings.jwt_algorithm,
            )
        )

    async def run(
        self,
        db: AsyncSession,
        operation: Operation,
        authorization: Optional[str] = None,
        company_id: Union[str, int, None] = None,
    ) -> AccessContext:
        """
        Decide whether a request may perform an operation.

        Args:
            db: Database session for the request
            operation: The operation's static access declaration
            authorization: Raw Authorization header value
            company_id: Company id from the route, for tenant operations

        Returns:
            None for public operations, ActorContext for actor-scoped ones,
            MemberContext for tenant-scoped ones

        Raises:
            AuthenticationError: Credential stage rejected
            AuthorizationError: Membership or role stage rejected
        """
        if operation.access is AccessLevel.PUBLIC:
            return None

        actor = await self.verifier.verify(db, authorization)
        if operation.access is AccessLevel.ACTOR:
            return actor

        member = await self.resolver.resolve(db, actor, company_id)
        if operation.access is AccessLevel.TENANT_READ:
            return member

        return self.authorizer.authorize(member, operation)
