"""
Site tree routes, scoped to the current subsite.

GET    /api/v1/pages?parent_id=0&live=true   → children of a page
POST   /api/v1/pages                         → create a page in the current subsite
"""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from subsites.auth import get_current_user
from subsites.models.site_tree import ROOT_PARENT_ID
from subsites.models.user import User
from subsites.routes.tenants import get_scoped_db, get_tenant_context
from subsites.services.content_service import create_node, get_children
from subsites.tenancy.context import TenantContext

router = APIRouter(tags=["Pages"])


class PageCreate(BaseModel):
    title: str
    parent_id: int = ROOT_PARENT_ID
    page_type: str = "Page"
    url_segment: str | None = None
    body: str | None = None
    publish: bool = False


class PageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    parent_id: int
    title: str
    page_type: str
    url_segment: str | None = None


@router.get("/pages", response_model=list[PageResponse])
async def list_pages(
    parent_id: int = ROOT_PARENT_ID,
    live: bool = True,
    db: AsyncSession = Depends(get_scoped_db),
):
    return await get_children(db, parent_id, live=live)


@router.post("/pages", response_model=PageResponse, status_code=status.HTTP_201_CREATED)
async def create_page(
    payload: PageCreate,
    context: TenantContext = Depends(get_tenant_context),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_scoped_db),
):
    return await create_node(
        db,
        payload.title,
        context=context,
        parent_id=payload.parent_id,
        page_type=payload.page_type,
        url_segment=payload.url_segment,
        body=payload.body,
        publish=payload.publish,
    )
