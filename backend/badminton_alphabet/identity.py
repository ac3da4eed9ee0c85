"""Identity reconciliation: map an authentication event to one canonical user.

Three entry points share the same rules:

* :meth:`IdentityService.reconcile` handles sign-ins through the hosted
  identity provider (OAuth, magic links, hosted password sessions) and the
  legacy client-asserted ``{external_id, email}`` sync.
* :meth:`IdentityService.register_local` and :meth:`IdentityService.login_local`
  cover the local-credential deployment where the backend stores bcrypt hashes.

Players can never self-register: creating a ``player`` consumes a pending
invitation in the same transaction as the user insert.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db.models import USER_ROLES, InvitationModel, UserModel
from .db.session import Database
from .errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from .identity_provider import IdentityProvider
from .repositories.invitations import invitations
from .repositories.users import normalize_email, users
from .security import hash_password, verify_password
from .telemetry import emit_event

logger = logging.getLogger(__name__)

Outcome = Literal["created", "linked", "existing"]
DEFAULT_ROLE = "player"


@dataclass(frozen=True)
class AuthClaims:
    external_id: Optional[str] = None
    email: Optional[str] = None
    access_token: Optional[str] = None
    display_name: Optional[str] = None
    requested_role: Optional[str] = None
    invitation_token: Optional[str] = None


@dataclass(frozen=True)
class _ResolvedIdentity:
    external_id: Optional[str]
    email: str
    metadata: Dict[str, Any] = field(default_factory=dict)


def _first_text(*candidates: Any) -> Optional[str]:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def resolve_role(requested: Optional[str], metadata: Dict[str, Any]) -> str:
    explicit = _first_text(requested)
    if explicit is not None:
        if explicit not in USER_ROLES:
            raise ValidationError(f"role must be one of {', '.join(USER_ROLES)}")
        return explicit
    # Unknown metadata roles fall through to the default.
    for candidate in (metadata.get("role"), metadata.get("user_role")):
        role = _first_text(candidate)
        if role in USER_ROLES:
            return role
    return DEFAULT_ROLE


def resolve_name(display_name: Optional[str], metadata: Dict[str, Any], email: str) -> str:
    return (
        _first_text(display_name, metadata.get("full_name"), metadata.get("name"), email.split("@")[0])
        or "User"
    )


class IdentityService:
    def __init__(self, database: Database, provider: Optional[IdentityProvider] = None) -> None:
        self._database = database
        self._provider = provider

    @property
    def provider_configured(self) -> bool:
        return self._provider is not None

    def reconcile(self, claims: AuthClaims) -> UserModel:
        identity = self._resolve(claims)
        try:
            with self._database.session_scope() as session:
                user, outcome = self._reconcile_in_session(session, claims, identity)
        except IntegrityError:
            # Lost a first-registration race: the winner's row now exists.
            logger.warning("Uniqueness conflict while reconciling %s; re-fetching", identity.email)
            with self._database.session_scope() as session:
                existing = users.find_for_identity(session, identity.external_id, identity.email)
                if existing is None:
                    raise ConflictError("User", "email", identity.email) from None
                user, outcome = self._settle_existing(session, existing, identity.external_id)

        emit_event(
            "identity_reconciled",
            outcome=outcome,
            user_id=user.id,
            role=user.role,
            via_token=bool(claims.access_token),
        )
        return user

    def register_local(
        self,
        *,
        email: str,
        password: str,
        name: Optional[str] = None,
        role: Optional[str] = None,
        invitation_token: Optional[str] = None,
    ) -> UserModel:
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("email required")
        password_hash = hash_password(password)
        effective_role = resolve_role(role, {})
        effective_name = resolve_name(name, {}, normalized)
        try:
            with self._database.session_scope() as session:
                if users.find_by_email(session, normalized) is not None:
                    raise ConflictError("User", "email", normalized)
                if effective_role == "player":
                    self._admit_player(session, normalized, invitation_token)
                user = users.create(
                    session,
                    name=effective_name,
                    email=normalized,
                    role=effective_role,
                    password_hash=password_hash,
                )
        except IntegrityError as exc:
            raise ConflictError("User", "email", normalized) from exc

        emit_event("identity_registered", user_id=user.id, role=user.role)
        return user

    def login_local(self, *, email: str, password: str) -> UserModel:
        with self._database.session_scope(commit=False) as session:
            user = users.find_by_email(session, email)
            if user is None or not verify_password(password, user.password_hash):
                emit_event("identity_login_failed", email=normalize_email(email))
                raise AuthenticationError("invalid credentials")
        emit_event("identity_login", user_id=user.id)
        return user

    def _resolve(self, claims: AuthClaims) -> _ResolvedIdentity:
        external_id = _first_text(claims.external_id)
        email = claims.email
        metadata: Dict[str, Any] = {}

        if claims.access_token:
            if self._provider is None:
                raise ServiceUnavailableError("identity provider not configured")
            # Verified values replace anything the client asserted.
            verified = self._provider.verify_token(claims.access_token)
            external_id = verified.external_id
            email = verified.email
            metadata = dict(verified.metadata)

        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("email required")
        return _ResolvedIdentity(external_id=external_id, email=normalized, metadata=metadata)

    def _reconcile_in_session(
        self,
        session: Session,
        claims: AuthClaims,
        identity: _ResolvedIdentity,
    ) -> Tuple[UserModel, Outcome]:
        existing = users.find_for_identity(session, identity.external_id, identity.email)
        if existing is not None:
            return self._settle_existing(session, existing, identity.external_id)

        role = resolve_role(claims.requested_role, identity.metadata)
        name = resolve_name(claims.display_name, identity.metadata, identity.email)
        if role == "player":
            self._admit_player(session, identity.email, claims.invitation_token)
        user = users.create(
            session,
            name=name,
            email=identity.email,
            role=role,
            external_id=identity.external_id,
        )
        return user, "created"

    def _settle_existing(
        self,
        session: Session,
        user: UserModel,
        external_id: Optional[str],
    ) -> Tuple[UserModel, Outcome]:
        if user.external_identity_id is None and external_id:
            return users.link_external_identity(session, user, external_id), "linked"
        return user, "existing"

    def _admit_player(
        self,
        session: Session,
        email: str,
        invitation_token: Optional[str],
    ) -> InvitationModel:
        """Consume the invitation that lets ``email`` register as a player.

        A pending invitation addressed to the email wins; otherwise the
        explicit token must name a pending invitation.
        """
        invitation = invitations.find_pending_for_email(session, email)
        if invitation is None and invitation_token:
            try:
                invitation = invitations.find_pending(session, invitation_token)
            except NotFoundError:
                invitation = None
        if invitation is None:
            emit_event("invitation_missing", email=email, token_supplied=bool(invitation_token))
            raise AuthorizationError("invitation required")
        return invitations.accept(session, invitation.id)


__all__ = [
    "AuthClaims",
    "IdentityService",
    "resolve_name",
    "resolve_role",
]
