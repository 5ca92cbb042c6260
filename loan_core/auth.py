"""Authentication strategies.

The provider is chosen once from ``AuthConfig`` and handed to the service
layer; request handlers only ever see the ``AuthProvider`` interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

from loan_core.config import AuthConfig
from loan_core.exceptions import AuthenticationError, ConfigurationError


@dataclass(frozen=True)
class AuthenticatedUser:
    """Caller identity with the organization it acts for."""

    user_id: str
    organization_id: str


class AuthProvider(ABC):
    """Resolve the current user from a request context."""

    name: str = ""

    @abstractmethod
    def get_current_user(self, context: Mapping[str, Any]) -> AuthenticatedUser:
        """Return the authenticated user or raise ``AuthenticationError``."""

    def is_authenticated(self, context: Mapping[str, Any]) -> bool:
        try:
            self.get_current_user(context)
        except AuthenticationError:
            return False
        return True


class ClaimsAuthProvider(AuthProvider):
    """OIDC-style claims: ``context["user"]["claims"]["sub"]``.

    The organization comes from ``context["organization_id"]`` (set by an
    organization middleware) or, failing that, from the claims.
    """

    name = "claims"

    def get_current_user(self, context: Mapping[str, Any]) -> AuthenticatedUser:
        user = context.get("user") or {}
        claims = user.get("claims") or {}
        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationError("Request carries no authenticated subject")
        organization_id = context.get("organization_id") or claims.get("organization_id")
        if not organization_id:
            raise AuthenticationError(f"User {user_id} is not a member of any organization")
        return AuthenticatedUser(user_id=str(user_id), organization_id=str(organization_id))


class SessionAuthProvider(AuthProvider):
    """Hosted-auth session: ``context["session"]["user"]`` with ``app_metadata``."""

    name = "session"

    def get_current_user(self, context: Mapping[str, Any]) -> AuthenticatedUser:
        session = context.get("session") or {}
        user = session.get("user") or {}
        user_id = user.get("id")
        if not user_id:
            raise AuthenticationError("No active session")
        metadata = user.get("app_metadata") or {}
        organization_id = metadata.get("organization_id")
        if not organization_id:
            raise AuthenticationError(f"User {user_id} is not a member of any organization")
        return AuthenticatedUser(user_id=str(user_id), organization_id=str(organization_id))


class StaticAuthProvider(AuthProvider):
    """Fixed identity for scripts and local runs."""

    name = "static"

    def __init__(self, user_id: str, organization_id: str) -> None:
        self.user = AuthenticatedUser(user_id=user_id, organization_id=organization_id)

    def get_current_user(self, context: Mapping[str, Any]) -> AuthenticatedUser:
        return self.user


def resolve_auth_provider(config: AuthConfig) -> AuthProvider:
    """Build the provider named by ``config.provider``.

    Raises
    ------
    ConfigurationError
        For an unknown provider, or ``static`` without a user and organization.
    """
    provider = config.provider.lower()
    if provider == ClaimsAuthProvider.name:
        return ClaimsAuthProvider()
    if provider == SessionAuthProvider.name:
        return SessionAuthProvider()
    if provider == StaticAuthProvider.name:
        if not config.static_user_id or not config.static_organization_id:
            raise ConfigurationError(
                "Static auth needs LOAN_CORE_STATIC_USER_ID and "
                "LOAN_CORE_STATIC_ORGANIZATION_ID"
            )
        return StaticAuthProvider(config.static_user_id, config.static_organization_id)
    raise ConfigurationError(f"Unknown auth provider: {config.provider!r}")
