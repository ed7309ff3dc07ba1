"""
Principal Resolver.

Responsibility:
    Turn an opaque session token into a live Principal, re-read from the
    durable store, or fail closed with UnauthenticatedError.

Architecture position:
    Kernel > Services.  Read-only; performs no writes.

Invariants enforced:
    - The user row is re-fetched on every call, bypassing the session's
      identity map, so deactivation and role changes apply immediately.
    - Claims from the verifier are used only to find the user id; role and
      active flag come from the store.

Failure modes:
    - UnauthenticatedError(reason) with reason one of: no_session,
      invalid_session, user_not_found, user_inactive, unknown_role.
"""

from collections.abc import Mapping
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from bizops_kernel.domain.principal import Principal
from bizops_kernel.domain.roles import parse_role
from bizops_kernel.exceptions import UnauthenticatedError
from bizops_kernel.logging_config import get_logger
from bizops_kernel.models.user import User
from bizops_kernel.services.base import BaseService

logger = get_logger("services.principal_resolver")


class SessionVerifier(Protocol):
    """
    Black-box session/credential verifier.

    Returns the session claims (at least ``id``) for a valid token, or None.
    """

    def verify(self, raw_token: str) -> Mapping[str, Any] | None: ...


class PrincipalResolver(BaseService[User]):
    """
    Resolves the Principal for one request.

    Contract:
        resolve() is read-only and must be called once per request; the
        result is passed explicitly down the call chain.
    """

    def __init__(self, session: Session, verifier: SessionVerifier):
        super().__init__(session)
        self._verifier = verifier

    def _reject(self, reason: str, user_id: str | None = None) -> None:
        logger.warning(
            "principal_rejected",
            extra={"reason": reason, "user_id": user_id},
        )
        raise UnauthenticatedError(reason)

    def resolve(self, session_token: str | None) -> Principal:
        """
        Resolve a session token to a Principal.

        Raises:
            UnauthenticatedError: No valid session, user missing, user
                inactive, or role unknown.
        """
        if not session_token:
            self._reject("no_session")

        claims = self._verifier.verify(session_token)
        if not claims or claims.get("id") is None:
            self._reject("invalid_session")

        try:
            user_id = UUID(str(claims["id"]))
        except ValueError:
            self._reject("invalid_session")

        stmt = (
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        user = self.session.execute(stmt).scalar_one_or_none()

        if user is None:
            self._reject("user_not_found", str(user_id))
        if not user.is_active:
            self._reject("user_inactive", str(user_id))

        role = parse_role(user.role)
        if role is None:
            self._reject("unknown_role", str(user_id))

        principal = Principal(
            id=user.id,
            email=user.email,
            name=user.name,
            role=role,
            is_active=user.is_active,
        )
        logger.info(
            "principal_resolved",
            extra={"user_id": str(principal.id), "role": principal.role.value},
        )
        return principal
