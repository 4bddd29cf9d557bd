from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_blog_service, get_optional_principal, get_principal
from app.schemas.auth import Principal
from app.schemas.common import Message
from app.schemas.content import ArticleFields, ArticleOut
from app.schemas.openapi import ERROR_RESPONSES
from app.services.content import BlogService

router = APIRouter(prefix="/blog", tags=["blog"])

@router.get("", response_model=list[ArticleOut])
async def list_articles(
    featured: bool = Query(default=False),
    published: bool = Query(default=False),
    viewer: Principal | None = Depends(get_optional_principal),
    blog: BlogService = Depends(get_blog_service),
):
    return await blog.list(viewer, published=published, featured=featured)

@router.get("/{article_id}", response_model=ArticleOut, responses=ERROR_RESPONSES)
async def get_article(
    article_id: str,
    viewer: Principal | None = Depends(get_optional_principal),
    blog: BlogService = Depends(get_blog_service),
):
    return await blog.get(article_id, viewer)

@router.post("", response_model=ArticleOut, status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def create_article(
    data: ArticleFields,
    principal: Principal = Depends(get_principal),
    blog: BlogService = Depends(get_blog_service),
):
    return await blog.create(principal, data)

@router.put("/{article_id}", response_model=ArticleOut, responses=ERROR_RESPONSES)
async def update_article(
    article_id: str,
    data: ArticleFields,
    principal: Principal = Depends(get_principal),
    blog: BlogService = Depends(get_blog_service),
):
    return await blog.update(principal, article_id, data)

@router.delete("/{article_id}", response_model=Message, responses=ERROR_RESPONSES)
async def delete_article(
    article_id: str,
    principal: Principal = Depends(get_principal),
    blog: BlogService = Depends(get_blog_service),
):
    await blog.delete(principal, article_id)
    return {"message": "Article deleted successfully"}
