from app.schemas.common import CamelModel

# Request bodies stay permissive; AuthService owns validation so errors keep a single shape.

class LoginIn(CamelModel):
    username: str | None = None
    password: str | None = None

class LoginOut(CamelModel):
    session_token: str
    username: str
    is_super_admin: bool

class Principal(CamelModel):
    id: str
    username: str
    is_super_admin: bool = False

class ForgotPasswordIn(CamelModel):
    username: str | None = None
    email: str | None = None

class ForgotPasswordOut(CamelModel):
    message: str
    reset_url: str | None = None

class ResetPasswordIn(CamelModel):
    token: str | None = None
    password: str | None = None

class AdminResetPasswordIn(CamelModel):
    new_password: str | None = None
