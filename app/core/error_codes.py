from enum import Enum

class ErrorCode(str, Enum):
    # --- Generic / HTTP-ish ---
    INTERNAL_ERROR = "internal_error"
    BAD_REQUEST = "bad_request"
    VALIDATION_ERROR = "validation_error"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVICE_UNAVAILABLE = "service_unavailable"

    # --- Auth / Sessions ---
    INVALID_CREDENTIALS = "invalid_credentials"
    TOKEN_MISSING = "token_missing"
    TOKEN_INVALID = "token_invalid"               # bad signature or expired, deliberately one code
    SUPER_ADMIN_REQUIRED = "super_admin_required"
    PASSWORD_TOO_WEAK = "password_too_weak"
    PASSWORD_RESET_INVALID = "password_reset_invalid"

    # --- Admins ---
    ADMIN_NOT_FOUND = "admin_not_found"
    ADMIN_EMAIL_MISSING = "admin_email_missing"
    ADMIN_SELF_DELETE = "admin_self_delete"
    ADMIN_DELETE_FORBIDDEN = "admin_delete_forbidden"   # target is a super admin
    ADMIN_SELF_RESET = "admin_self_reset"
    EMAIL_INVALID = "email_invalid"
    USERNAME_TAKEN = "username_taken"
    EMAIL_TAKEN = "email_taken"

    # --- Content ---
    ARTICLE_NOT_FOUND = "article_not_found"
    PORTFOLIO_ITEM_NOT_FOUND = "portfolio_item_not_found"

    # --- Infra / Storage ---
    DATABASE_ERROR = "database_error"
    UNIQUE_CONSTRAINT_VIOLATION = "unique_constraint_violation"

    # --- Config / Env ---
    CONFIG_ERROR = "config_error"
