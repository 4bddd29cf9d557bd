"""Admin authentication, authorization and password-reset flow.

All rules about who may do what to which admin live here; routes only translate
HTTP into calls on :class:`AuthService`. The service never trusts the
``is_super_admin`` claim carried by a session token: privileged operations
re-read the requesting admin from the store, so a revoked flag takes effect
before the token expires.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import List, NoReturn

from fastapi import status

from app.core.config import settings
from app.core.error_codes import ErrorCode
from app.core.exceptions import DuplicateEntryError, raise_error
from app.core.security import (
    create_session_jwt,
    decode_session_jwt,
    dummy_verify_async,
    gen_reset_token,
    hash_password_async,
    is_bcrypt_hash,
    verify_password_async,
)
from app.schemas.auth import ForgotPasswordOut, LoginOut, Principal
from app.services.email import Mailer
from app.stores.base import AdminRecord, Store

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
FORGOT_PASSWORD_MESSAGE = "If the username or email exists, a password reset email will be sent"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    def __init__(self, store: Store, mailer: Mailer):
        self.store = store
        self.mailer = mailer

    # ---- validation helpers ----

    @staticmethod
    def _check_password(password: str | None, message: str | None = None) -> str:
        min_len = settings.PASSWORD_MIN_LENGTH
        if not password or len(password) < min_len:
            raise_error(
                ErrorCode.PASSWORD_TOO_WEAK,
                status.HTTP_400_BAD_REQUEST,
                message or f"Password must be at least {min_len} characters",
            )
        return password

    @staticmethod
    def _check_email(email: str | None) -> str | None:
        email = (email or "").strip() or None
        if email and not EMAIL_RE.match(email):
            raise_error(ErrorCode.EMAIL_INVALID, status.HTTP_400_BAD_REQUEST, "Invalid email format")
        return email

    @staticmethod
    def _conflict(exc: DuplicateEntryError) -> NoReturn:
        if exc.field == "email":
            raise_error(ErrorCode.EMAIL_TAKEN, status.HTTP_400_BAD_REQUEST, "Email already exists")
        if exc.field == "username":
            raise_error(ErrorCode.USERNAME_TAKEN, status.HTTP_400_BAD_REQUEST, "Username already exists")
        raise_error(ErrorCode.CONFLICT, status.HTTP_400_BAD_REQUEST, "Duplicate value")

    # ---- sessions ----

    async def login(self, username: str | None, password: str | None) -> LoginOut:
        username = (username or "").strip()
        password = (password or "").strip()
        if not username or not password:
            raise_error(ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST, "Username and password are required")
        if not settings.JWT_SECRET:
            logger.error("JWT_SECRET is not configured")
            raise_error(ErrorCode.CONFIG_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR, "Server configuration error")

        admin = await self.store.admins.find_by_username(username, case_insensitive=True)
        if not admin:
            # burn the same bcrypt time as a real comparison
            await dummy_verify_async()
            logger.warning("Failed login for unknown username %r", username)
            raise_error(ErrorCode.INVALID_CREDENTIALS, status.HTTP_401_UNAUTHORIZED, "Invalid credentials")

        if not is_bcrypt_hash(admin.password_hash):
            logger.error("Admin %s has no usable bcrypt hash", admin.id)
            raise_error(ErrorCode.CONFIG_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR, "Server configuration error")

        if not await verify_password_async(password, admin.password_hash):
            logger.warning("Failed login for admin %s", admin.id)
            raise_error(ErrorCode.INVALID_CREDENTIALS, status.HTTP_401_UNAUTHORIZED, "Invalid credentials")

        token = create_session_jwt(admin.id, admin.username, admin.is_super_admin)
        return LoginOut(session_token=token, username=admin.username, is_super_admin=admin.is_super_admin)

    def require_session(self, token: str | None) -> Principal:
        if not token:
            raise_error(ErrorCode.TOKEN_MISSING, status.HTTP_401_UNAUTHORIZED, "Access token required")
        payload = decode_session_jwt(token)
        if payload is None:
            raise_error(ErrorCode.TOKEN_INVALID, status.HTTP_403_FORBIDDEN, "Invalid or expired token")
        return Principal(
            id=str(payload["sub"]),
            username=payload.get("username") or "",
            is_super_admin=bool(payload.get("is_super_admin")),
        )

    async def require_super_admin(self, principal: Principal) -> Principal:
        admin = await self.store.admins.find_by_id(principal.id)
        if not admin or not admin.is_super_admin:
            logger.warning("Admin %s denied super-admin access", principal.id)
            raise_error(ErrorCode.SUPER_ADMIN_REQUIRED, status.HTTP_403_FORBIDDEN, "Super administrator access required")
        return principal.model_copy(update={"username": admin.username, "is_super_admin": True})

    # ---- admin accounts ----

    async def get_profile(self, principal: Principal) -> AdminRecord:
        admin = await self.store.admins.find_by_id(principal.id)
        if not admin:
            raise_error(ErrorCode.ADMIN_NOT_FOUND, status.HTTP_404_NOT_FOUND, "Admin not found")
        return admin

    async def list_admins(self, requestor: Principal) -> List[AdminRecord]:
        await self.require_super_admin(requestor)
        return await self.store.admins.list_all()

    async def _insert_admin(
        self, username: str | None, email: str | None, password: str | None, is_super_admin: bool
    ) -> AdminRecord:
        username = (username or "").strip()
        if not username or not password:
            raise_error(ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST, "Username and password are required")
        self._check_password(password)
        email = self._check_email(email)

        hashed = await hash_password_async(password)
        try:
            return await self.store.admins.create(
                {"username": username, "email": email, "password_hash": hashed, "is_super_admin": is_super_admin}
            )
        except DuplicateEntryError as exc:
            self._conflict(exc)

    async def create_admin(
        self, requestor: Principal, username: str | None, email: str | None, password: str | None
    ) -> AdminRecord:
        await self.require_super_admin(requestor)
        admin = await self._insert_admin(username, email, password, is_super_admin=False)
        logger.info("Admin %s created by %s", admin.id, requestor.id)
        return admin

    async def bootstrap_admin(self, username: str | None, email: str | None, password: str | None) -> AdminRecord:
        """Create an admin outside the API; it is a super admin when none exists yet."""
        is_super = await self.store.admins.find_super_admin() is None
        admin = await self._insert_admin(username, email, password, is_super_admin=is_super)
        logger.info("Bootstrapped admin %s (super_admin=%s)", admin.id, is_super)
        return admin

    async def update_admin(
        self,
        requestor: Principal,
        target_id: str,
        username: str | None,
        email: str | None,
        password: str | None = None,
    ) -> None:
        # authorization first: a non-super admin learns nothing about other accounts
        current = await self.store.admins.find_by_id(requestor.id)
        is_super = bool(current and current.is_super_admin)
        if not is_super and target_id != requestor.id:
            raise_error(ErrorCode.FORBIDDEN, status.HTTP_403_FORBIDDEN, "You can only modify your own account")

        username = (username or "").strip()
        if not username:
            raise_error(ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST, "Username is required")
        email = self._check_email(email)

        target = await self.store.admins.find_by_id(target_id)
        if not target:
            raise_error(ErrorCode.ADMIN_NOT_FOUND, status.HTTP_404_NOT_FOUND, "Admin not found")

        # PUT replaces the profile: an omitted email clears it
        fields = {"username": username, "email": email}
        if password:
            self._check_password(password)
            fields["password_hash"] = await hash_password_async(password)

        try:
            await self.store.admins.update(target.id, fields)
        except DuplicateEntryError as exc:
            self._conflict(exc)
        logger.info("Admin %s updated by %s", target.id, requestor.id)

    async def delete_admin(self, requestor: Principal, target_id: str) -> None:
        await self.require_super_admin(requestor)
        if target_id == requestor.id:
            raise_error(ErrorCode.ADMIN_SELF_DELETE, status.HTTP_400_BAD_REQUEST, "You cannot delete your own account")

        target = await self.store.admins.find_by_id(target_id)
        if not target:
            raise_error(ErrorCode.ADMIN_NOT_FOUND, status.HTTP_404_NOT_FOUND, "Admin not found")
        if target.is_super_admin:
            raise_error(
                ErrorCode.ADMIN_DELETE_FORBIDDEN,
                status.HTTP_400_BAD_REQUEST,
                "Cannot delete another super administrator",
            )

        await self.store.admins.delete(target.id)
        logger.info("Admin %s deleted by %s", target.id, requestor.id)

    async def admin_reset_password(self, requestor: Principal, target_id: str, new_password: str | None) -> None:
        await self.require_super_admin(requestor)
        self._check_password(new_password, f"New password must be at least {settings.PASSWORD_MIN_LENGTH} characters")

        target = await self.store.admins.find_by_id(target_id)
        if not target:
            raise_error(ErrorCode.ADMIN_NOT_FOUND, status.HTTP_404_NOT_FOUND, "Admin not found")
        if target.id == requestor.id:
            raise_error(
                ErrorCode.ADMIN_SELF_RESET,
                status.HTTP_400_BAD_REQUEST,
                "Use the regular password reset for your own account",
            )

        hashed = await hash_password_async(new_password)
        await self.store.admins.update(target.id, {"password_hash": hashed})
        logger.info("Password of admin %s reset by %s", target.id, requestor.id)

    async def set_password(self, username: str, password: str | None) -> AdminRecord:
        """Operator repair path used by the command line."""
        admin = await self.store.admins.find_by_username(username.strip(), case_insensitive=True)
        if not admin:
            raise_error(ErrorCode.ADMIN_NOT_FOUND, status.HTTP_404_NOT_FOUND, "Admin not found")
        self._check_password(password)
        await self.store.admins.update(admin.id, {"password_hash": await hash_password_async(password)})
        return admin

    # ---- password reset ----

    async def forgot_password(self, username: str | None, email: str | None) -> ForgotPasswordOut:
        username = (username or "").strip() or None
        email = (email or "").strip() or None
        if not username and not email:
            raise_error(ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST, "Username or email is required")

        if email:
            admin = await self.store.admins.find_by_email(email)
        else:
            admin = await self.store.admins.find_by_username(username)

        if not admin:
            # do not reveal existence
            return ForgotPasswordOut(message=FORGOT_PASSWORD_MESSAGE)

        if not admin.email:
            raise_error(
                ErrorCode.ADMIN_EMAIL_MISSING,
                status.HTTP_400_BAD_REQUEST,
                "No email address registered for this account. Please contact an administrator.",
            )

        await self.store.reset_tokens.delete_unused_for_admin(admin.id)
        token = gen_reset_token()
        expires_at = _now() + timedelta(minutes=settings.PASSWORD_RESET_TTL_MINUTES)
        await self.store.reset_tokens.create(admin.id, token, expires_at)

        reset_url = f"{settings.FRONTEND_BASE_URL.rstrip('/')}/admin/reset-password?token={token}"
        await self._send_reset_email(admin, reset_url)

        return ForgotPasswordOut(
            message=FORGOT_PASSWORD_MESSAGE,
            reset_url=None if settings.is_production else reset_url,
        )

    async def _send_reset_email(self, admin: AdminRecord, reset_url: str) -> None:
        minutes = settings.PASSWORD_RESET_TTL_MINUTES
        body = (
            f"Hello {admin.username},\n\n"
            "A password reset was requested for your administrator account.\n\n"
            f"Use this link to choose a new password (valid {minutes} minutes):\n{reset_url}\n\n"
            "If you did not request this, ignore this email.\n"
        )
        html = (
            "<h2>Password reset</h2>"
            f"<p>Hello {admin.username},</p>"
            "<p>A password reset was requested for your administrator account.</p>"
            f'<p><a href="{reset_url}">Reset my password</a> (valid {minutes} minutes)</p>'
            f"<p>Or paste this link into your browser:<br>{reset_url}</p>"
            "<p>If you did not request this, ignore this email.</p>"
        )
        # delivery is best effort; the caller always gets the generic answer
        try:
            await self.mailer.send(admin.email, "Password reset", body, html)
        except Exception as exc:
            logger.warning("Password reset email for admin %s failed: %s", admin.id, exc)

    async def reset_password(self, token: str | None, password: str | None) -> None:
        if not token or not password:
            raise_error(ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST, "Token and password are required")
        self._check_password(password)

        # not found, used and expired all look the same to the caller
        record = await self.store.reset_tokens.find_valid(token, _now())
        if not record:
            raise_error(ErrorCode.PASSWORD_RESET_INVALID, status.HTTP_400_BAD_REQUEST, "Invalid or expired token")

        # claim before hashing: of two concurrent requests only one may win
        if not await self.store.reset_tokens.mark_used(record.id, _now()):
            raise_error(ErrorCode.PASSWORD_RESET_INVALID, status.HTTP_400_BAD_REQUEST, "Invalid or expired token")

        hashed = await hash_password_async(password)
        if not await self.store.admins.update(record.admin_id, {"password_hash": hashed}):
            raise_error(ErrorCode.PASSWORD_RESET_INVALID, status.HTTP_400_BAD_REQUEST, "Invalid or expired token")
        logger.info("Password of admin %s reset with token %s", record.admin_id, record.id)

    async def purge_expired_tokens(self) -> int:
        removed = await self.store.reset_tokens.purge_expired(_now())
        if removed:
            logger.info("Purged %d expired reset tokens", removed)
        return removed
