"""Auth Context: explicitly owned credentials for one caller, passed into every call.

Invariants:
    - No module-global token: each request builds its own AuthContext
    - AuthContext is frozen; sign-out means dropping the object
    - Identity verification happens upstream (hosted auth service); this only carries it
"""

from dataclasses import dataclass

from coach.core.errors import AuthenticationError


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    access_token: str

    def owns(self, other: "AuthContext") -> bool:
        """Same user, regardless of which access token was presented."""
        return self.user_id == other.user_id


def parse_bearer(authorization: str | None) -> str:
    """Extract the token from an 'Authorization: Bearer <token>' header value."""
    if not authorization:
        raise AuthenticationError("Authorization header required")
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid authorization header")
    return token.strip()


def build_auth_context(authorization: str | None, user_id: str | None) -> AuthContext:
    token = parse_bearer(authorization)
    if not user_id or not user_id.strip():
        raise AuthenticationError("User identity missing")
    return AuthContext(user_id=user_id.strip(), access_token=token)
