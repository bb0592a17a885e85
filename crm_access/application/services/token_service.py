"""Token issuer: signs, verifies, rotates and revokes access/refresh token pairs.

Access tokens are stateless. Refresh tokens are signed with their own key
and are only live while their jti record exists in the credential store, so
revocation is a delete and verification always does a store lookup.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from crm_access.application.dtos.auth import (
    AuthResult,
    TokenClaims,
    TokenInspection,
    TokenPair,
)
from crm_access.domain.entities import RefreshToken
from crm_access.domain.exceptions import (
    AccountDisabledException,
    InvalidTokenException,
    StoreTableMissingException,
    StoreUnavailableException,
    TokenRevokedException,
    ValidationException,
)
from crm_access.shared.enums import TokenType
from crm_access.shared.utils.datetime import Clock, to_epoch_ms, utc_now
from crm_access.shared.utils.generators import generate_jti

if TYPE_CHECKING:
    from crm_access.application.interfaces.repositories import ICredentialStore
    from crm_access.application.interfaces.services import ITokenCodec
    from crm_access.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_THRESHOLD_MS = 5 * 60 * 1000


class TokenService:
    """Issues and verifies JWT pairs; refresh token liveness lives in the store."""

    def __init__(
        self,
        store: ICredentialStore,
        codec: ITokenCodec,
        *,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=180),
        refresh_ttl: timedelta = timedelta(days=7),
        refresh_threshold_ms: int = DEFAULT_REFRESH_THRESHOLD_MS,
        allow_unpersisted_refresh: bool = False,
        clock: Clock = utc_now,
    ) -> None:
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must use different secrets")
        self.store = store
        self.codec = codec
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.refresh_threshold_ms = refresh_threshold_ms
        self.allow_unpersisted_refresh = allow_unpersisted_refresh
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        store: ICredentialStore,
        codec: ITokenCodec,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> TokenService:
        return cls(
            store,
            codec,
            access_secret=settings.secret_key.get_secret_value(),
            refresh_secret=settings.refresh_secret_key.get_secret_value(),
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
            refresh_threshold_ms=settings.refresh_threshold_ms,
            allow_unpersisted_refresh=settings.allow_unpersisted_refresh_tokens,
            clock=clock,
        )

    # Issuance

    def issue_access_token(self, claims: TokenClaims) -> str:
        """Sign a short-lived access token. No store I/O."""
        now = self.clock()
        payload = claims.to_payload()
        payload["type"] = TokenType.ACCESS.value
        return self.codec.encode(
            payload,
            secret=self._access_secret,
            issued_at=now,
            expires_at=now + self.access_ttl,
        )

    async def issue_refresh_token(
        self, claims: TokenClaims, *, allow_unpersisted_refresh: bool | None = None
    ) -> str:
        """Sign a refresh token with a fresh jti and persist its record.

        A missing refresh token collection is created once (ensure_ready) and
        the write retried. Other store failures propagate unless the unpersisted
        fallback is enabled, in which case the token is returned anyway and will
        fail verification later.

        Raises:
            StoreUnavailableException: The record could not be written.
        """
        allow = (
            self.allow_unpersisted_refresh
            if allow_unpersisted_refresh is None
            else allow_unpersisted_refresh
        )
        now = self.clock()
        expires_at = now + self.refresh_ttl
        jti = generate_jti()
        payload = claims.to_payload()
        payload["type"] = TokenType.REFRESH.value
        payload["jti"] = jti
        token = self.codec.encode(
            payload,
            secret=self._refresh_secret,
            issued_at=now,
            expires_at=expires_at,
        )
        record = RefreshToken(
            jti=jti,
            user_id=claims.user_id,
            token=token,
            expires_at=expires_at,
            created_at=now,
        )
        try:
            await self._persist_refresh_token(record)
        except StoreTableMissingException:
            raise
        except StoreUnavailableException as e:
            if not allow:
                raise
            logger.error(
                "Issuing unpersisted refresh token for user %s: %s",
                claims.user_id,
                e.details,
            )
        return token

    async def _persist_refresh_token(self, record: RefreshToken) -> None:
        try:
            await self.store.put_refresh_token(record)
        except StoreTableMissingException as e:
            logger.warning(
                "Refresh token collection %s missing; creating it", e.collection
            )
            await self.store.ensure_ready()
            await self.store.put_refresh_token(record)

    async def issue_token_pair(
        self, claims: TokenClaims, *, allow_unpersisted_refresh: bool | None = None
    ) -> TokenPair:
        """Issue access + refresh tokens; expiries are read back from the tokens (ms)."""
        access_token = self.issue_access_token(claims)
        refresh_token = await self.issue_refresh_token(
            claims, allow_unpersisted_refresh=allow_unpersisted_refresh
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_token_expiry=int(self.codec.peek(access_token)["exp"]) * 1000,
            refresh_token_expiry=int(self.codec.peek(refresh_token)["exp"]) * 1000,
        )

    # Verification

    def _decode(self, token: str, secret: str, expected: TokenType) -> TokenClaims:
        payload = self.codec.decode(token, secret=secret, now=self.clock())
        try:
            claims = TokenClaims.from_payload(payload)
        except (ValueError, ValidationException):
            raise InvalidTokenException("claims") from None
        if claims.token_type is not expected:
            raise InvalidTokenException("wrong_type")
        return claims

    def verify_access_token(self, token: str) -> TokenClaims:
        """Check signature, expiry and type of an access token.

        Raises:
            InvalidTokenException: On any failure (details carry the reason).
        """
        return self._decode(token, self._access_secret, TokenType.ACCESS)

    async def verify_refresh_token(self, token: str) -> TokenClaims:
        """Check signature, then require a live store record for the jti.

        Raises:
            InvalidTokenException: Bad signature/claims, or the record expired.
            TokenRevokedException: No record for the jti (logged out, rotated, revoked).
            StoreUnavailableException: The store could not be consulted.
        """
        claims = self._decode(token, self._refresh_secret, TokenType.REFRESH)
        if not claims.jti:
            raise InvalidTokenException("missing_jti")
        record = await self.store.get_refresh_token(claims.jti)
        if record is None or record.user_id != claims.user_id:
            raise TokenRevokedException(claims.jti)
        now = self.clock()
        if record.is_expired(now):
            await self._delete_quietly(record.jti)
            raise InvalidTokenException("expired")
        try:
            touched = await self.store.touch_refresh_token(record.jti, now)
        except StoreUnavailableException as e:
            logger.warning("Could not update last_used for %s: %s", record.jti, e.details)
        else:
            if not touched:
                raise TokenRevokedException(record.jti)
        return claims

    def is_near_expiry(self, token: str, threshold_ms: int | None = None) -> bool:
        """True when exp is within threshold, missing, or the token is undecodable."""
        threshold = self.refresh_threshold_ms if threshold_ms is None else threshold_ms
        try:
            payload = self.codec.peek(token)
        except InvalidTokenException:
            return True
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            return True
        return exp * 1000 - to_epoch_ms(self.clock()) < threshold

    def inspect(self, token: str) -> TokenInspection:
        """Report whether an access token is valid, expired and near expiry.

        The payload is returned only for tokens signed with the access key
        (valid or merely expired); forged or undecodable tokens get none.
        """
        near_expiry = self.is_near_expiry(token)
        try:
            self.verify_access_token(token)
        except InvalidTokenException as e:
            expired = e.details.get("reason") == "expired"
            payload = self.codec.peek(token) if expired else None
            return TokenInspection(
                valid=False, expired=expired, near_expiry=near_expiry, payload=payload
            )
        return TokenInspection(
            valid=True,
            expired=False,
            near_expiry=near_expiry,
            payload=self.codec.peek(token),
        )

    def decode_refresh_claims(self, token: str) -> TokenClaims:
        """Verify a refresh token's signature only (no store lookup, expiry ignored).

        Used by logout, which must be able to revoke a token that already expired.
        """
        try:
            payload = self.codec.decode(
                token, secret=self._refresh_secret, now=self.clock()
            )
        except InvalidTokenException as e:
            if e.details.get("reason") != "expired":
                raise
            payload = self.codec.peek(token)
        try:
            claims = TokenClaims.from_payload(payload)
        except (ValueError, ValidationException):
            raise InvalidTokenException("claims") from None
        if claims.token_type is not TokenType.REFRESH or not claims.jti:
            raise InvalidTokenException("wrong_type")
        return claims

    # Rotation and revocation

    async def rotate_refresh_token(self, refresh_token: str) -> AuthResult:
        """Exchange a refresh token for a new pair built from the current user record.

        The old jti is deleted once the new pair is issued, so a refresh token
        can be used once, and a failed issuance leaves the old one usable.

        Raises:
            InvalidTokenException, TokenRevokedException: Refresh token unusable.
            AccountDisabledException: User missing or soft-deleted.
        """
        claims = await self.verify_refresh_token(refresh_token)
        user = await self.store.get_user_by_id(claims.user_id)
        if user is None or user.is_deleted:
            await self._delete_quietly(claims.jti)
            raise AccountDisabledException(claims.user_id)
        tokens = await self.issue_token_pair(TokenClaims.for_user(user))
        if claims.jti:
            await self.store.delete_refresh_token(claims.jti)
        logger.info("Rotated refresh token for user %s", user.user_id)
        return AuthResult(user=user, tokens=tokens)

    async def rotate(self, access_token: str, refresh_token: str) -> TokenPair | None:
        """Rotate only when the access token is near expiry; otherwise None."""
        if not self.is_near_expiry(access_token):
            return None
        result = await self.rotate_refresh_token(refresh_token)
        return result.tokens

    async def revoke(self, jti: str) -> None:
        await self.store.delete_refresh_token(jti)

    async def revoke_all_for_user(self, user_id: str) -> int:
        """Delete every refresh token record of the user. Returns the count."""
        tokens = await self.store.list_refresh_tokens_by_user(user_id)
        for record in tokens:
            await self.store.delete_refresh_token(record.jti)
        if tokens:
            logger.info("Revoked %d refresh tokens for user %s", len(tokens), user_id)
        return len(tokens)

    async def _delete_quietly(self, jti: str | None) -> None:
        if not jti:
            return
        try:
            await self.store.delete_refresh_token(jti)
        except StoreUnavailableException as e:
            logger.warning("Could not delete refresh token %s: %s", jti, e.details)
