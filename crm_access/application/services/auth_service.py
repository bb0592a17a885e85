"""Authentication use cases: register, login, refresh, logout, profile."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from crm_access.application.dtos.auth import (
    AuthResult,
    ProfileUpdate,
    RegisterCommand,
    TokenClaims,
    TokenPair,
)
from crm_access.domain.constants import CREATED_BY_SELF, UNASSIGNED_TENANT
from crm_access.domain.entities import User
from crm_access.domain.enums import Role
from crm_access.domain.exceptions import (
    AccountDisabledException,
    InvalidCredentialsException,
    InvalidTokenException,
    StoreUnavailableException,
    ValidationException,
)
from crm_access.shared.utils.generators import generate_cuid

if TYPE_CHECKING:
    from crm_access.application.interfaces.repositories import ICredentialStore
    from crm_access.application.interfaces.services import IPasswordHasher
    from crm_access.application.services.token_service import TokenService

logger = logging.getLogger(__name__)

SELF_REGISTRATION_ROLES = frozenset({Role.SALES_REP, Role.SALES_MANAGER})


class AuthService:
    """Credential checks plus token issuance for the /auth endpoints."""

    def __init__(
        self,
        store: ICredentialStore,
        tokens: TokenService,
        hasher: IPasswordHasher,
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.hasher = hasher

    async def register(self, command: RegisterCommand) -> AuthResult:
        """Self-register a SALES_REP or SALES_MANAGER in the UNASSIGNED tenant.

        Raises:
            ValidationException: Requested role is not self-assignable.
            UserAlreadyExistsException: Email already registered.
        """
        if command.role not in SELF_REGISTRATION_ROLES:
            raise ValidationException(
                "Self-registration is limited to sales roles", field="role"
            )
        now = self.tokens.clock()
        user = User(
            user_id=generate_cuid(),
            email=command.email.strip().lower(),
            role=command.role,
            tenant_id=UNASSIGNED_TENANT,
            hashed_password=await self.hasher.hash(command.password),
            first_name=command.first_name,
            last_name=command.last_name,
            phone_number=command.phone_number or None,
            created_by=CREATED_BY_SELF,
            created_at=now,
            updated_at=now,
        )
        await self.store.put_user(user, create=True)
        logger.info("User registered: %s (%s)", user.user_id, user.role.value)
        tokens = await self.tokens.issue_token_pair(TokenClaims.for_user(user))
        return AuthResult(user=user, tokens=tokens)

    async def login(self, email: str, password: str) -> AuthResult:
        """Check credentials, revoke the user's previous sessions, issue a new pair.

        Unknown email and wrong password fail identically (same message,
        comparable timing).

        Raises:
            InvalidCredentialsException: Unknown email or wrong password.
            AccountDisabledException: Credentials are right but the user is deleted.
        """
        user = await self.store.get_user_by_email(email)
        if user is None:
            await self.hasher.verify_dummy(password)
            logger.warning("Login failed: unknown email")
            raise InvalidCredentialsException()
        if not await self.hasher.verify(password, user.hashed_password):
            logger.warning("Login failed: bad password for user %s", user.user_id)
            raise InvalidCredentialsException()
        if user.is_deleted:
            logger.warning("Login refused: user %s is deleted", user.user_id)
            raise AccountDisabledException(user.user_id, message="Account is disabled")
        try:
            await self.tokens.revoke_all_for_user(user.user_id)
        except StoreUnavailableException as e:
            logger.warning(
                "Could not revoke prior sessions for user %s: %s", user.user_id, e.details
            )
        tokens = await self.tokens.issue_token_pair(TokenClaims.for_user(user))
        logger.info("User logged in: %s", user.user_id)
        return AuthResult(user=user, tokens=tokens)

    async def refresh(self, refresh_token: str) -> AuthResult:
        """Rotate a refresh token into a new pair (single use)."""
        return await self.tokens.rotate_refresh_token(refresh_token)

    async def auto_refresh(self, access_token: str, refresh_token: str) -> TokenPair | None:
        """Rotate only when the access token is near expiry."""
        return await self.tokens.rotate(access_token, refresh_token)

    async def logout(self, refresh_token: str | None, user_id: str | None = None) -> None:
        """Revoke the presented refresh token; optionally every session of its owner.

        Never fails on a bad or already-revoked token. The all-sessions
        revocation only runs when user_id matches the token's owner.
        """
        if not refresh_token:
            return
        try:
            claims = self.tokens.decode_refresh_claims(refresh_token)
        except InvalidTokenException as e:
            logger.info("Logout with unusable refresh token: %s", e.details)
            return
        if claims.jti:
            await self.tokens.revoke(claims.jti)
        if user_id:
            if user_id == claims.user_id:
                await self.tokens.revoke_all_for_user(user_id)
            else:
                logger.warning(
                    "Logout requested revocation for user %s with a token of user %s",
                    user_id,
                    claims.user_id,
                )
        logger.info("User logged out: %s", claims.user_id)

    async def get_profile(self, user_id: str) -> User:
        """Current user record.

        Raises:
            AccountDisabledException: User missing or deleted.
        """
        user = await self.store.get_user_by_id(user_id)
        if user is None or user.is_deleted:
            raise AccountDisabledException(user_id)
        return user

    async def update_profile(self, user_id: str, update: ProfileUpdate) -> User:
        """Update names and phone; change the password when current_password matches.

        Raises:
            ValidationException: Password change without current password.
            InvalidCredentialsException: current_password is wrong.
        """
        user = await self.get_profile(user_id)
        changes: dict[str, object] = {}
        if update.first_name is not None:
            changes["first_name"] = update.first_name
        if update.last_name is not None:
            changes["last_name"] = update.last_name
        if update.phone_number is not None:
            changes["phone_number"] = update.phone_number or None
        if update.password:
            if not update.current_password:
                raise ValidationException(
                    "currentPassword is required to change the password",
                    field="currentPassword",
                )
            if not await self.hasher.verify(update.current_password, user.hashed_password):
                raise InvalidCredentialsException()
            changes["hashed_password"] = await self.hasher.hash(update.password)
        if not changes:
            return user
        updated = replace(user, updated_at=self.tokens.clock(), **changes)
        await self.store.put_user(updated)
        logger.info("Profile updated for user %s (%s)", user_id, ", ".join(sorted(changes)))
        return updated

    async def change_password(
        self, user_id: str, current_password: str, new_password: str
    ) -> None:
        await self.update_profile(
            user_id,
            ProfileUpdate(password=new_password, current_password=current_password),
        )
