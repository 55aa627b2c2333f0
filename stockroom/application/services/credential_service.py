from __future__ import annotations

import logging
from typing import Dict

from ...domain.errors import (
    ChallengeNotFound,
    EmailAlreadyRegistered,
    EmailPendingVerification,
    Forbidden,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    ValidationError,
)
from ...domain.models import ChallengePurpose, User
from ...domain.ports.identity import IdentityVerifier
from ...domain.ports.persistence import PersistenceGateway
from ...domain.results import (
    Authenticated,
    ChallengeRequired,
    EmailAvailability,
    ExternalLoginResult,
    LoginResult,
    PasswordResetStarted,
    SetPasswordRequired,
)
from ...services.passwords import (
    ensure_strong_password,
    hash_password,
    spend_password_check,
    verify_password,
)
from ...services.token_service import TokenService
from .verification_service import VerificationService

logger = logging.getLogger(__name__)


class CredentialService:
    """Registration, login, external identities and password recovery."""

    def __init__(
        self,
        persistence: PersistenceGateway,
        verification: VerificationService,
        tokens: TokenService,
        identity_verifiers: Dict[str, IdentityVerifier],
    ) -> None:
        self._persistence = persistence
        self._verification = verification
        self._tokens = tokens
        self._identity_verifiers = identity_verifiers

    # Registration ---------------------------------------------------------
    def check_email(self, email: str) -> EmailAvailability:
        user = self._persistence.get_user_by_email(self._normalize_email(email))
        if user is None:
            return EmailAvailability(available=True, pending=False)
        return EmailAvailability(available=False, pending=not user.is_verified)

    def register(self, name: str, email: str, password: str) -> User:
        clean_name = name.strip()
        clean_email = self._normalize_email(email)
        if not clean_name:
            raise ValidationError("Name is required")
        existing = self._persistence.get_user_by_email(clean_email)
        if existing is not None:
            if existing.is_verified:
                raise EmailAlreadyRegistered()
            raise EmailPendingVerification()
        ensure_strong_password(password)

        user = self._persistence.create_user(
            email=clean_email,
            name=clean_name,
            password_hash=hash_password(password),
        )
        logger.info("Registered user %s pending verification", user.id)
        self._verification.initiate(user, ChallengePurpose.REGISTER)
        return user

    def complete_registration(self, user_id: int, code: str) -> User:
        self._verification.verify(user_id, ChallengePurpose.REGISTER, code)
        user = self._persistence.update_user(user_id, verified=True)
        logger.info("User %s verified their email", user.id)
        return user

    def resend_registration(self, email: str) -> None:
        user = self._persistence.get_user_by_email(self._normalize_email(email))
        if user is None:
            # Same answer as a successful resend so account existence stays hidden.
            return
        if user.is_verified:
            raise EmailAlreadyRegistered("Email already verified")
        try:
            self._verification.resend(user.id, ChallengePurpose.REGISTER)
        except ChallengeNotFound:
            self._verification.initiate(user, ChallengePurpose.REGISTER)

    # Login ----------------------------------------------------------------
    def login(self, email: str, password: str) -> LoginResult:
        user = self._persistence.get_user_by_email(self._normalize_email(email))
        if user is None or not user.password_hash:
            spend_password_check(password)
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentials()

        if not user.is_verified:
            if not self._verification.has_open_challenge(user.id, ChallengePurpose.REGISTER):
                self._verification.initiate(user, ChallengePurpose.REGISTER)
            return ChallengeRequired(user_id=user.id, email=user.email)

        logger.info("User %s logged in", user.id)
        return Authenticated(user=user, token=self._tokens.issue(user))

    def login_with_external_identity(self, provider: str, token: str) -> ExternalLoginResult:
        verifier = self._identity_verifiers.get(provider)
        if verifier is None:
            raise ValidationError(f"Unsupported identity provider: {provider}")
        if not token:
            raise ValidationError("Missing identity token")
        identity = verifier.verify(token)
        if not identity.email_verified:
            raise InvalidCredentials("This Google account email is not verified")

        user = self._persistence.get_user_by_google_id(identity.subject)
        if user is None:
            user = self._persistence.get_user_by_email(identity.email)
            if user is not None:
                # Pending accounts lose their password; only the proven owner sets one.
                user = self._persistence.update_user(
                    user.id,
                    google_id=identity.subject,
                    verified=True,
                    clear_password=not user.is_verified,
                )
                logger.info("Linked %s identity to user %s", provider, user.id)
            else:
                user = self._persistence.create_user(
                    email=identity.email,
                    name=identity.name or identity.email.split("@")[0],
                    password_hash=None,
                    verified=True,
                    google_id=identity.subject,
                )
                logger.info("Created user %s from %s identity", user.id, provider)

        session = self._tokens.issue(user)
        if not user.has_password:
            return SetPasswordRequired(user=user, token=session)
        return Authenticated(user=user, token=session)

    def authenticate_token(self, token: str) -> User:
        payload = self._tokens.verify(token)
        user = self._persistence.get_user_by_id(payload.user_id)
        if user is None:
            raise InvalidToken("User not found")
        return user

    # Password recovery ----------------------------------------------------
    def start_password_reset(self, email: str) -> PasswordResetStarted:
        user = self._persistence.get_user_by_email(self._normalize_email(email))
        if user is None:
            raise NotFound("No account found with this email")
        self._verification.initiate(user, ChallengePurpose.FORGOT_PASSWORD)
        return PasswordResetStarted(
            user_id=user.id,
            email=user.email,
            set_password=not user.has_password,
        )

    def verify_password_reset(self, user_id: int, code: str) -> None:
        self._verification.verify(user_id, ChallengePurpose.FORGOT_PASSWORD, code)

    def resend_password_reset(self, user_id: int) -> int:
        self._verification.resend(user_id, ChallengePurpose.FORGOT_PASSWORD)
        return user_id

    def reset_password(self, user_id: int, new_password: str, code: str) -> User:
        ensure_strong_password(new_password)
        password_hash = hash_password(new_password)
        with self._persistence.atomic():
            self._verification.complete(user_id, ChallengePurpose.FORGOT_PASSWORD, code)
            user = self._persistence.update_user(user_id, password_hash=password_hash)
        logger.info("Password reset for user %s", user.id)
        return user

    def set_initial_password(self, user: User, new_password: str) -> User:
        """Give a signed-in, password-less account its first password."""
        ensure_strong_password(new_password)
        password_hash = hash_password(new_password)
        with self._persistence.atomic():
            current = self._persistence.get_user_by_id(user.id)
            if current is None or current.has_password:
                raise Forbidden("This account already has a password. Use a reset code instead")
            user = self._persistence.update_user(user.id, password_hash=password_hash)
        logger.info("User %s set their first password", user.id)
        return user

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()
