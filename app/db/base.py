# Re-export Base and ensure all models are imported so metadata is complete
from app.db.session import Base  # provides Base.metadata

# Import models here so Alembic and create_all can discover them via Base.metadata
from app.models.admin import Admin  # noqa: F401
from app.models.password_reset import PasswordResetToken  # noqa: F401
from app.models.content import BlogArticle, PortfolioItem  # noqa: F401
