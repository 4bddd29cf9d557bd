from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_optional_principal, get_portfolio_service, get_principal
from app.schemas.auth import Principal
from app.schemas.common import Message
from app.schemas.content import PortfolioFields, PortfolioOut
from app.schemas.openapi import ERROR_RESPONSES
from app.services.content import PortfolioService

router = APIRouter(prefix="/portfolio", tags=["portfolio"])

@router.get("", response_model=list[PortfolioOut])
async def list_items(
    featured: bool = Query(default=False),
    published: bool = Query(default=False),
    viewer: Principal | None = Depends(get_optional_principal),
    portfolio: PortfolioService = Depends(get_portfolio_service),
):
    return await portfolio.list(viewer, published=published, featured=featured)

@router.get("/{item_id}", response_model=PortfolioOut, responses=ERROR_RESPONSES)
async def get_item(
    item_id: str,
    viewer: Principal | None = Depends(get_optional_principal),
    portfolio: PortfolioService = Depends(get_portfolio_service),
):
    return await portfolio.get(item_id, viewer)

@router.post("", response_model=PortfolioOut, status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def create_item(
    data: PortfolioFields,
    principal: Principal = Depends(get_principal),
    portfolio: PortfolioService = Depends(get_portfolio_service),
):
    return await portfolio.create(principal, data)

@router.put("/{item_id}", response_model=PortfolioOut, responses=ERROR_RESPONSES)
async def update_item(
    item_id: str,
    data: PortfolioFields,
    principal: Principal = Depends(get_principal),
    portfolio: PortfolioService = Depends(get_portfolio_service),
):
    return await portfolio.update(principal, item_id, data)

@router.delete("/{item_id}", response_model=Message, responses=ERROR_RESPONSES)
async def delete_item(
    item_id: str,
    principal: Principal = Depends(get_principal),
    portfolio: PortfolioService = Depends(get_portfolio_service),
):
    await portfolio.delete(principal, item_id)
    return {"message": "Portfolio item deleted successfully"}
