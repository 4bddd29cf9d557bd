"""
Tests for AuthService against an in-memory SQL store.

Covers login, super-admin checks, account management rules and the
forgot/reset password flow without going through HTTP.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.config import settings
from app.core.error_codes import ErrorCode
from app.core.exceptions import AppException
from app.core.security import decode_session_jwt, hash_password
from app.services.auth import FORGOT_PASSWORD_MESSAGE, AuthService


async def _raises(code: ErrorCode, status_code: int, coro):
    with pytest.raises(AppException) as exc:
        await coro
    assert exc.value.error_code == code
    assert exc.value.status_code == status_code
    return exc.value


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_returns_session_for_valid_credentials(self, auth, root):
        out = await auth.login("root", "rootpass")

        assert out.username == "root"
        assert out.is_super_admin is True
        payload = decode_session_jwt(out.session_token)
        assert payload["sub"] == root.id

    @pytest.mark.asyncio
    async def test_username_is_matched_case_insensitively(self, auth, root):
        out = await auth.login("  ROOT ", "rootpass")
        assert out.username == "root"

    @pytest.mark.asyncio
    async def test_oldest_account_wins_a_case_collision(self, auth, store):
        await store.admins.create({"username": "Alice", "email": None, "password_hash": hash_password("first1")})
        await store.admins.create({"username": "alice", "email": None, "password_hash": hash_password("second2")})

        out = await auth.login("ALICE", "first1")
        assert out.username == "Alice"
        await _raises(ErrorCode.INVALID_CREDENTIALS, 401, auth.login("alice", "second2"))

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user_look_the_same(self, auth, root):
        wrong = await _raises(ErrorCode.INVALID_CREDENTIALS, 401, auth.login("root", "nope"))
        unknown = await _raises(ErrorCode.INVALID_CREDENTIALS, 401, auth.login("ghost", "nope"))
        assert wrong.user_message == unknown.user_message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_missing_fields(self, auth):
        await _raises(ErrorCode.VALIDATION_ERROR, 400, auth.login("", "x"))
        await _raises(ErrorCode.VALIDATION_ERROR, 400, auth.login("root", None))

    @pytest.mark.asyncio
    async def test_stored_plaintext_password_is_a_server_error(self, auth, store):
        await store.admins.create({"username": "legacy", "email": None, "password_hash": "hunter22"})
        err = await _raises(ErrorCode.CONFIG_ERROR, 500, auth.login("legacy", "hunter22"))
        assert err.user_message == "Server configuration error"

    @pytest.mark.asyncio
    async def test_missing_jwt_secret(self, auth, root, monkeypatch):
        monkeypatch.setattr(settings, "JWT_SECRET", None)
        await _raises(ErrorCode.CONFIG_ERROR, 500, auth.login("root", "rootpass"))


class TestSessions:
    def test_missing_token(self, auth):
        with pytest.raises(AppException) as exc:
            auth.require_session(None)
        assert exc.value.status_code == 401
        assert exc.value.user_message == "Access token required"

    def test_invalid_token(self, auth):
        with pytest.raises(AppException) as exc:
            auth.require_session("garbage")
        assert exc.value.status_code == 403
        assert exc.value.user_message == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_super_admin_flag_is_read_from_the_store(self, auth, store, root):
        token = (await auth.login("root", "rootpass")).session_token
        session = auth.require_session(token)
        assert session.is_super_admin

        await store.admins.update(root.id, {"is_super_admin": False})
        await _raises(ErrorCode.SUPER_ADMIN_REQUIRED, 403, auth.require_super_admin(session))

    @pytest.mark.asyncio
    async def test_deleted_admin_loses_super_access(self, auth, store, root, principal):
        session = principal(root)
        await store.admins.delete(root.id)
        await _raises(ErrorCode.SUPER_ADMIN_REQUIRED, 403, auth.require_super_admin(session))


class TestBootstrap:
    @pytest.mark.asyncio
    async def test_first_admin_is_super(self, auth):
        first = await auth.bootstrap_admin("root", None, "rootpass")
        second = await auth.bootstrap_admin("helper", None, "helperpass")
        assert first.is_super_admin is True
        assert second.is_super_admin is False

    @pytest.mark.asyncio
    async def test_password_rules_apply(self, auth):
        await _raises(ErrorCode.PASSWORD_TOO_WEAK, 400, auth.bootstrap_admin("root", None, "abc"))


class TestCreateAdmin:
    @pytest.mark.asyncio
    async def test_created_admin_is_never_super(self, auth, store, root, principal):
        admin = await auth.create_admin(principal(root), "  writer ", "writer@example.com", "writerpass")

        assert admin.username == "writer"
        assert admin.is_super_admin is False
        assert admin.password_hash != "writerpass"
        assert (await store.admins.find_by_id(admin.id)).email == "writer@example.com"

    @pytest.mark.asyncio
    async def test_requires_super_admin(self, auth, editor, principal):
        await _raises(
            ErrorCode.SUPER_ADMIN_REQUIRED,
            403,
            auth.create_admin(principal(editor), "writer", None, "writerpass"),
        )

    @pytest.mark.asyncio
    async def test_validation(self, auth, root, principal):
        me = principal(root)
        await _raises(ErrorCode.VALIDATION_ERROR, 400, auth.create_admin(me, "   ", None, "writerpass"))
        await _raises(ErrorCode.VALIDATION_ERROR, 400, auth.create_admin(me, "writer", None, None))
        await _raises(ErrorCode.PASSWORD_TOO_WEAK, 400, auth.create_admin(me, "writer", None, "12345"))
        await _raises(ErrorCode.EMAIL_INVALID, 400, auth.create_admin(me, "writer", "not-an-email", "writerpass"))

    @pytest.mark.asyncio
    async def test_duplicates(self, auth, root, editor, principal):
        me = principal(root)
        err = await _raises(ErrorCode.USERNAME_TAKEN, 400, auth.create_admin(me, "editor", None, "writerpass"))
        assert err.user_message == "Username already exists"
        err = await _raises(
            ErrorCode.EMAIL_TAKEN, 400, auth.create_admin(me, "writer", "editor@example.com", "writerpass")
        )
        assert err.user_message == "Email already exists"

    @pytest.mark.asyncio
    async def test_several_admins_without_email(self, auth, root, principal):
        me = principal(root)
        await auth.create_admin(me, "a1", None, "password")
        await auth.create_admin(me, "a2", "", "password")
        names = [a.username for a in await auth.list_admins(me)]
        assert names == ["a2", "a1", "root"]


class TestUpdateAdmin:
    @pytest.mark.asyncio
    async def test_regular_admin_cannot_touch_others(self, auth, root, editor, principal):
        # rejected before the payload is even looked at
        err = await _raises(ErrorCode.FORBIDDEN, 403, auth.update_admin(principal(editor), root.id, None, None))
        assert err.user_message == "You can only modify your own account"

    @pytest.mark.asyncio
    async def test_self_update_replaces_profile(self, auth, store, editor, principal):
        await auth.update_admin(principal(editor), editor.id, " editor2 ", None, "newpassword")

        updated = await store.admins.find_by_id(editor.id)
        assert updated.username == "editor2"
        assert updated.email is None
        assert (await auth.login("editor2", "newpassword")).username == "editor2"

    @pytest.mark.asyncio
    async def test_super_admin_updates_anyone(self, auth, store, root, editor, principal):
        await auth.update_admin(principal(root), editor.id, "editor", "new@example.com")

        updated = await store.admins.find_by_id(editor.id)
        assert updated.email == "new@example.com"
        # no password given, old one still works
        assert (await auth.login("editor", "editorpass")).username == "editor"

    @pytest.mark.asyncio
    async def test_errors(self, auth, root, editor, principal):
        me = principal(root)
        await _raises(ErrorCode.VALIDATION_ERROR, 400, auth.update_admin(me, editor.id, "", None))
        await _raises(ErrorCode.ADMIN_NOT_FOUND, 404, auth.update_admin(me, "999999", "ghost", None))
        await _raises(ErrorCode.USERNAME_TAKEN, 400, auth.update_admin(me, editor.id, "root", None))
        await _raises(ErrorCode.EMAIL_TAKEN, 400, auth.update_admin(me, editor.id, "editor", "root@example.com"))
        await _raises(ErrorCode.PASSWORD_TOO_WEAK, 400, auth.update_admin(me, editor.id, "editor", None, "123"))


class TestDeleteAdmin:
    @pytest.mark.asyncio
    async def test_delete_regular_admin_and_tokens(self, auth, store, root, editor, principal):
        await auth.forgot_password("editor", None)
        assert await store.reset_tokens.list_for_admin(editor.id)

        await auth.delete_admin(principal(root), editor.id)

        assert await store.admins.find_by_id(editor.id) is None
        assert await store.reset_tokens.list_for_admin(editor.id) == []

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, auth, root, principal):
        await _raises(ErrorCode.ADMIN_SELF_DELETE, 400, auth.delete_admin(principal(root), root.id))

    @pytest.mark.asyncio
    async def test_cannot_delete_another_super_admin(self, auth, store, root, editor, principal):
        await store.admins.update(editor.id, {"is_super_admin": True})
        await _raises(ErrorCode.ADMIN_DELETE_FORBIDDEN, 400, auth.delete_admin(principal(root), editor.id))

    @pytest.mark.asyncio
    async def test_missing_admin(self, auth, root, principal):
        await _raises(ErrorCode.ADMIN_NOT_FOUND, 404, auth.delete_admin(principal(root), "424242"))
        await _raises(ErrorCode.ADMIN_NOT_FOUND, 404, auth.delete_admin(principal(root), "not-an-id"))


class TestAdminResetPassword:
    @pytest.mark.asyncio
    async def test_super_admin_sets_new_password(self, auth, root, editor, principal):
        await auth.admin_reset_password(principal(root), editor.id, "brandnew")
        assert (await auth.login("editor", "brandnew")).username == "editor"
        await _raises(ErrorCode.INVALID_CREDENTIALS, 401, auth.login("editor", "editorpass"))

    @pytest.mark.asyncio
    async def test_rules(self, auth, root, editor, principal):
        me = principal(root)
        err = await _raises(ErrorCode.PASSWORD_TOO_WEAK, 400, auth.admin_reset_password(me, editor.id, "123"))
        assert err.user_message == "New password must be at least 6 characters"
        await _raises(ErrorCode.ADMIN_SELF_RESET, 400, auth.admin_reset_password(me, root.id, "brandnew"))
        await _raises(ErrorCode.ADMIN_NOT_FOUND, 404, auth.admin_reset_password(me, "31337", "brandnew"))
        await _raises(
            ErrorCode.SUPER_ADMIN_REQUIRED, 403, auth.admin_reset_password(principal(editor), root.id, "brandnew")
        )


class TestForgotPassword:
    @pytest.mark.asyncio
    async def test_unknown_account_gets_generic_answer(self, auth, store, mailer, root):
        out = await auth.forgot_password("ghost", None)

        assert out.message == FORGOT_PASSWORD_MESSAGE
        assert out.reset_url is None
        assert mailer.sent == []
        assert await store.reset_tokens.list_for_admin(root.id) == []

    @pytest.mark.asyncio
    async def test_issues_token_and_sends_email(self, auth, store, mailer, root):
        out = await auth.forgot_password(None, "root@example.com")

        tokens = await store.reset_tokens.list_for_admin(root.id)
        assert len(tokens) == 1
        token = tokens[0]
        assert token.used is False
        remaining = token.expires_at - datetime.now(timezone.utc)
        assert timedelta(minutes=55) < remaining <= timedelta(minutes=settings.PASSWORD_RESET_TTL_MINUTES)

        assert out.message == FORGOT_PASSWORD_MESSAGE
        assert out.reset_url == f"http://cms.test/admin/reset-password?token={token.token}"
        assert len(mailer.sent) == 1
        assert mailer.sent[0]["to"] == "root@example.com"
        assert out.reset_url in mailer.sent[0]["body"]

    @pytest.mark.asyncio
    async def test_new_request_replaces_unused_tokens(self, auth, store, root):
        await auth.forgot_password("root", None)
        first = (await store.reset_tokens.list_for_admin(root.id))[0].token
        await auth.forgot_password("root", None)

        tokens = await store.reset_tokens.list_for_admin(root.id)
        assert len(tokens) == 1
        assert tokens[0].token != first

    @pytest.mark.asyncio
    async def test_account_without_email(self, auth, store, root, principal):
        await auth.create_admin(principal(root), "noemail", None, "password")
        err = await _raises(ErrorCode.ADMIN_EMAIL_MISSING, 400, auth.forgot_password("noemail", None))
        assert "contact an administrator" in err.user_message

    @pytest.mark.asyncio
    async def test_username_or_email_required(self, auth):
        await _raises(ErrorCode.VALIDATION_ERROR, 400, auth.forgot_password("  ", None))

    @pytest.mark.asyncio
    async def test_production_hides_reset_url(self, auth, root, monkeypatch):
        monkeypatch.setattr(settings, "ENV", "production")
        out = await auth.forgot_password("root", None)
        assert out.reset_url is None

    @pytest.mark.asyncio
    async def test_mail_failure_is_not_reported(self, store, failing_mailer, root):
        auth = AuthService(store, failing_mailer)
        out = await auth.forgot_password("root", None)

        assert out.message == FORGOT_PASSWORD_MESSAGE
        assert len(await store.reset_tokens.list_for_admin(root.id)) == 1


class TestResetPassword:
    @pytest.mark.asyncio
    async def test_concurrent_resets_with_one_token(self, auth, store, root):
        await auth.forgot_password("root", None)
        token = (await store.reset_tokens.list_for_admin(root.id))[0].token

        results = await asyncio.gather(
            auth.reset_password(token, "first-pass"),
            auth.reset_password(token, "second-pass"),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, AppException)]
        assert results.count(None) == 1
        assert len(failures) == 1
        assert failures[0].error_code == ErrorCode.PASSWORD_RESET_INVALID
        winner = "first-pass" if results[0] is None else "second-pass"
        loser = "second-pass" if winner == "first-pass" else "first-pass"
        assert (await auth.login("root", winner)).username == "root"
        await _raises(ErrorCode.INVALID_CREDENTIALS, 401, auth.login("root", loser))

    @pytest.mark.asyncio
    async def test_token_is_single_use(self, auth, store, root):
        await auth.forgot_password("root", None)
        token = (await store.reset_tokens.list_for_admin(root.id))[0].token

        await auth.reset_password(token, "freshpass")

        assert (await auth.login("root", "freshpass")).username == "root"
        assert (await store.reset_tokens.list_for_admin(root.id))[0].used is True
        await _raises(ErrorCode.PASSWORD_RESET_INVALID, 400, auth.reset_password(token, "otherpass"))

    @pytest.mark.asyncio
    async def test_expired_token(self, auth, store, root):
        past = datetime.now(timezone.utc) - timedelta(minutes=1)
        await store.reset_tokens.create(root.id, "a" * 64, past)

        err = await _raises(ErrorCode.PASSWORD_RESET_INVALID, 400, auth.reset_password("a" * 64, "freshpass"))
        assert err.user_message == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_unknown_token_and_weak_password(self, auth, root):
        await _raises(ErrorCode.PASSWORD_RESET_INVALID, 400, auth.reset_password("b" * 64, "freshpass"))
        await _raises(ErrorCode.PASSWORD_TOO_WEAK, 400, auth.reset_password("b" * 64, "123"))
        await _raises(ErrorCode.VALIDATION_ERROR, 400, auth.reset_password(None, "freshpass"))

    @pytest.mark.asyncio
    async def test_used_tokens_survive_a_new_request(self, auth, store, root):
        await auth.forgot_password("root", None)
        token = (await store.reset_tokens.list_for_admin(root.id))[0].token
        await auth.reset_password(token, "freshpass")

        await auth.forgot_password("root", None)
        tokens = await store.reset_tokens.list_for_admin(root.id)
        assert [t.used for t in tokens] == [True, False]


class TestPurge:
    @pytest.mark.asyncio
    async def test_purge_removes_only_expired_tokens(self, auth, store, root):
        now = datetime.now(timezone.utc)
        await store.reset_tokens.create(root.id, "c" * 64, now - timedelta(hours=2))
        await store.reset_tokens.create(root.id, "d" * 64, now + timedelta(hours=1))

        assert await auth.purge_expired_tokens() == 1
        assert [t.token for t in await store.reset_tokens.list_for_admin(root.id)] == ["d" * 64]
