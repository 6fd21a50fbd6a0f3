"""Verification of bearer tokens issued by the host panel.

The panel owns login and token issuance; billingcore only checks the
signature and reads the caller's identity from the claims. HS256 tokens are
verified with a shared secret, RS256 tokens with the panel's PEM public key.
"""
from typing import Any, Dict

import jwt

from billingcore.config import settings

REQUIRED_CLAIMS = ("sub", "role")


class PanelTokenVerifier:
    """Decode and validate panel-issued JWTs."""

    def __init__(self, key: str, algorithm: str = "HS256"):
        """
        Initialize the verifier.

        Args:
            key: Shared secret (HS*) or PEM public key (RS*/ES*)
            algorithm: Expected signing algorithm
        """
        self.key = key
        self.algorithm = algorithm

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Verify a panel token and return its claims.

        ``sub`` is normalized to an integer user ID.

        Args:
            token: Encoded JWT

        Returns:
            Decoded claims (sub, uuid, username, email, role)

        Raises:
            jwt.ExpiredSignatureError: If the token has expired
            jwt.InvalidTokenError: If the token is invalid or lacks required claims
        """
        payload = jwt.decode(
            token,
            self.key,
            algorithms=[self.algorithm],
            options={"require": list(REQUIRED_CLAIMS)},
        )

        try:
            payload["sub"] = int(payload["sub"])
        except (TypeError, ValueError):
            raise jwt.InvalidTokenError("Subject must be a numeric user ID")

        return payload


# Global verifier instance
panel_tokens = PanelTokenVerifier(settings.panel_jwt_key, settings.panel_jwt_algorithm)
