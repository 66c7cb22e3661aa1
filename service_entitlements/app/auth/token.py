"""
Bearer token verification for the Entitlements Service.
"""

from typing import Any, Dict, List, Optional

from jose import JWTError, jwt

from shared.errors import AuthenticationError
from shared.logging import get_logger


class TokenVerifier:
    """Verifies HS256 access tokens issued by the campus identity provider."""

    def __init__(self, secret: str, algorithms: Optional[List[str]] = None,
                 audience: Optional[str] = "authenticated"):
        self.secret = secret
        self.algorithms = algorithms or ["HS256"]
        self.audience = audience
        self.logger = get_logger("entitlements.auth")

    def authenticate(self, authorization: Optional[str]) -> str:
        """Return the user id carried by an Authorization header."""
        if not authorization or not authorization.startswith("Bearer "):
            raise AuthenticationError("Missing or invalid Authorization header")

        token = authorization[7:].strip()
        if not token:
            raise AuthenticationError("Authorization header contained empty bearer token")

        claims = self.decode(token)
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise AuthenticationError("JWT missing subject claim")
        return subject

    def decode(self, token: str) -> Dict[str, Any]:
        options: Dict[str, Any] = {"verify_aud": self.audience is not None}
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                audience=self.audience,
                options=options,
            )
        except JWTError as exc:
            self.logger.warning("Token verification failed", error=str(exc))
            raise AuthenticationError("Invalid token", details={"error": str(exc)}) from exc
