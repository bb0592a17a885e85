"""JWT encoding and verification (python-jose).

Secrets are passed per call: access and refresh tokens are signed with
different keys. Expiry is checked against a caller-supplied "now" rather
than the wall clock so token lifetimes are testable.
"""

from datetime import datetime
from typing import Any, cast

from jose import JWTError, jwt

from crm_access.domain.exceptions import InvalidTokenException


class JoseTokenCodec:
    """ITokenCodec implementation backed by python-jose."""

    def __init__(self, algorithm: str = "HS256") -> None:
        self.algorithm = algorithm

    def encode(
        self,
        claims: dict[str, Any],
        *,
        secret: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> str:
        """Sign claims with iat and exp set (integer epoch seconds)."""
        to_encode = claims.copy()
        to_encode["iat"] = int(issued_at.timestamp())
        to_encode["exp"] = int(expires_at.timestamp())
        return cast(str, jwt.encode(to_encode, secret, algorithm=self.algorithm))

    def decode(self, token: str, *, secret: str, now: datetime) -> dict[str, Any]:
        """Verify signature and expiry, returning the payload.

        Raises:
            InvalidTokenException: reason "expired" when exp is at or before
                now, "signature" for any other verification failure.
        """
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            raise InvalidTokenException("signature") from None
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            raise InvalidTokenException("signature")
        if exp <= now.timestamp():
            raise InvalidTokenException("expired")
        return payload

    def peek(self, token: str) -> dict[str, Any]:
        """Decode claims without verifying the signature or expiry.

        Only for structural checks. Never use the result to authorize anything.

        Raises:
            InvalidTokenException: reason "malformed".
        """
        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            raise InvalidTokenException("malformed") from None
