"""
Acting-user providers.

The user id recorded by backend procedures comes from one provider chosen at
startup from configuration; handlers receive the provider instead of looking
up session state themselves.
"""

from typing import Optional

from models.errors import create_validation_error

AUTH_PROVIDER_ANONYMOUS = "anonymous"
AUTH_PROVIDER_STATIC = "static"


class AuthProvider:
    """Base provider: supplies the id of the user acting through the server."""

    name = "base"

    def current_user_id(self) -> Optional[str]:
        raise NotImplementedError


class AnonymousAuthProvider(AuthProvider):
    """No acting user; the backend records changes without a user id."""

    name = AUTH_PROVIDER_ANONYMOUS

    def current_user_id(self) -> Optional[str]:
        return None


class StaticAuthProvider(AuthProvider):
    """A fixed acting user, typically an admin or service account."""

    name = AUTH_PROVIDER_STATIC

    def __init__(self, user_id: str):
        if not user_id or not user_id.strip():
            raise create_validation_error("Static auth provider requires a user id")
        self.user_id = user_id.strip()

    def current_user_id(self) -> Optional[str]:
        return self.user_id


def build_auth_provider(kind: str, acting_user_id: Optional[str] = None) -> AuthProvider:
    """
    Build the configured provider.

    Args:
        kind: "anonymous" or "static"
        acting_user_id: Required for the static provider

    Raises:
        ToolError: VALIDATION_ERROR for unknown kinds or a missing user id
    """
    normalized = (kind or AUTH_PROVIDER_ANONYMOUS).strip().lower()
    if normalized == AUTH_PROVIDER_ANONYMOUS:
        return AnonymousAuthProvider()
    if normalized == AUTH_PROVIDER_STATIC:
        return StaticAuthProvider(acting_user_id or "")
    raise create_validation_error(
        f"Unknown auth provider '{kind}'. Must be one of: "
        f"{AUTH_PROVIDER_ANONYMOUS}, {AUTH_PROVIDER_STATIC}"
    )
