from datetime import datetime

from app.schemas.common import CamelModel

class AdminOut(CamelModel):
    id: str
    username: str
    email: str | None = None
    is_super_admin: bool
    created_at: datetime | None = None


class AdminCreateIn(CamelModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None


class AdminUpdateIn(CamelModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None
