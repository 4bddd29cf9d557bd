from fastapi import Depends, Header

from app.core.error_codes import ErrorCode
from app.core.exceptions import AppException
from app.schemas.auth import Principal
from app.services.auth import AuthService
from app.services.content import BlogService, PortfolioService
from app.services.email import Mailer, mailer
from app.stores.base import Store
from app.stores.factory import get_store

def get_mailer() -> Mailer:
    return mailer

def get_auth_service(
    store: Store = Depends(get_store),
    mail: Mailer = Depends(get_mailer),
) -> AuthService:
    return AuthService(store, mail)

def get_blog_service(store: Store = Depends(get_store)) -> BlogService:
    return BlogService(store)

def get_portfolio_service(store: Store = Depends(get_store)) -> PortfolioService:
    return PortfolioService(store)

def _bearer(authorization: str | None) -> str | None:
    # "Bearer <token>", any other scheme counts as no token
    if not authorization:
        return None
    parts = authorization.split(None, 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None

def get_principal(
    authorization: str | None = Header(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> Principal:
    return auth.require_session(_bearer(authorization))

async def require_super_admin(
    principal: Principal = Depends(get_principal),
    auth: AuthService = Depends(get_auth_service),
) -> Principal:
    return await auth.require_super_admin(principal)

def get_optional_principal(
    authorization: str | None = Header(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> Principal | None:
    # public routes: a bad token just means an anonymous caller
    token = _bearer(authorization)
    if not token:
        return None
    try:
        return auth.require_session(token)
    except AppException as exc:
        if exc.error_code == ErrorCode.CONFIG_ERROR:
            raise
        return None
