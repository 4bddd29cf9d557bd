from fastapi import APIRouter, Depends

from app.api.deps import get_auth_service, get_principal
from app.schemas.admin import AdminOut
from app.schemas.auth import (
    ForgotPasswordIn,
    ForgotPasswordOut,
    LoginIn,
    LoginOut,
    Principal,
    ResetPasswordIn,
)
from app.schemas.common import Message
from app.schemas.openapi import ERROR_RESPONSES
from app.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginOut, responses=ERROR_RESPONSES)
async def login(data: LoginIn, auth: AuthService = Depends(get_auth_service)):
    return await auth.login(data.username, data.password)


@router.get("/me", response_model=AdminOut, responses=ERROR_RESPONSES)
async def me(principal: Principal = Depends(get_principal), auth: AuthService = Depends(get_auth_service)):
    return AdminOut.model_validate(await auth.get_profile(principal))


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordOut,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
async def forgot_password(data: ForgotPasswordIn, auth: AuthService = Depends(get_auth_service)):
    return await auth.forgot_password(data.username, data.email)


@router.post("/reset-password", response_model=Message, responses=ERROR_RESPONSES)
async def reset_password(data: ResetPasswordIn, auth: AuthService = Depends(get_auth_service)):
    await auth.reset_password(data.token, data.password)
    return {"message": "Password reset successfully"}
