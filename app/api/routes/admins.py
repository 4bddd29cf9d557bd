from fastapi import APIRouter, Depends, status

from app.api.deps import get_auth_service, get_principal, require_super_admin
from app.schemas.admin import AdminCreateIn, AdminOut, AdminUpdateIn
from app.schemas.auth import AdminResetPasswordIn, Principal
from app.schemas.common import Message
from app.schemas.openapi import ERROR_RESPONSES
from app.services.auth import AuthService

router = APIRouter(prefix="/auth/admins", tags=["admins"])

@router.get("", response_model=list[AdminOut], responses=ERROR_RESPONSES)
async def list_admins(
    principal: Principal = Depends(require_super_admin),
    auth: AuthService = Depends(get_auth_service),
):
    return [AdminOut.model_validate(a) for a in await auth.list_admins(principal)]

@router.post("", response_model=Message, status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def create_admin(
    data: AdminCreateIn,
    principal: Principal = Depends(require_super_admin),
    auth: AuthService = Depends(get_auth_service),
):
    await auth.create_admin(principal, data.username, data.email, data.password)
    return {"message": "Admin created successfully"}

# self-service or super admin; the service decides
@router.put("/{admin_id}", response_model=Message, responses=ERROR_RESPONSES)
async def update_admin(
    admin_id: str,
    data: AdminUpdateIn,
    principal: Principal = Depends(get_principal),
    auth: AuthService = Depends(get_auth_service),
):
    await auth.update_admin(principal, admin_id, data.username, data.email, data.password)
    return {"message": "Admin updated successfully"}

@router.delete("/{admin_id}", response_model=Message, responses=ERROR_RESPONSES)
async def delete_admin(
    admin_id: str,
    principal: Principal = Depends(require_super_admin),
    auth: AuthService = Depends(get_auth_service),
):
    await auth.delete_admin(principal, admin_id)
    return {"message": "Admin deleted successfully"}

@router.post("/{admin_id}/reset-password", response_model=Message, responses=ERROR_RESPONSES)
async def reset_admin_password(
    admin_id: str,
    data: AdminResetPasswordIn,
    principal: Principal = Depends(require_super_admin),
    auth: AuthService = Depends(get_auth_service),
):
    await auth.admin_reset_password(principal, admin_id, data.new_password)
    return {"message": "Password reset successfully"}
