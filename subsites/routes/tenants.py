"""
Subsite Administration Routes

GET    /api/v1/subsites                       → subsites the caller can access
POST   /api/v1/subsites                       → create subsite            (main-site ADMIN)
GET    /api/v1/subsites/current               → current subsite of the session
PUT    /api/v1/subsites/current               → switch the session's subsite
GET    /api/v1/subsites/resolve?host=...      → resolve a host            (main-site ADMIN)
GET    /api/v1/subsites/permissions           → permission codes declared by this layer
GET    /api/v1/subsites/{id}                  → get subsite
POST   /api/v1/subsites/{id}/domains          → bind a domain             (main-site ADMIN)
POST   /api/v1/subsites/{id}/instances        → instantiate a template    (main-site ADMIN)
POST   /api/v1/subsites/{id}/duplicate        → copy a subsite            (main-site ADMIN)

Also exposes the `get_tenant_context` and `get_scoped_db` FastAPI
dependencies for subsite-aware routes across the application.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from subsites.auth import get_current_user
from subsites.config import settings
from subsites.database import get_db
from subsites.exceptions import AuthorizationError, InvalidOperationError
from subsites.models.tenant import MAIN_SITE_ID, Tenant, TenantDomain
from subsites.models.user import ADMIN_CODE, User
from subsites.permissions_config.permissions import CMS_ACCESS_CMSMAIN, provide_permissions
from subsites.services.tenant_service import add_domain, create_tenant, get_tenant_or_404
from subsites.tenancy.accessible import accessible_tenants, has_main_site_permission
from subsites.tenancy.context import TenantContext
from subsites.tenancy.duplicator import create_from_template, duplicate_tenant
from subsites.tenancy.host_map import get_primary_domain
from subsites.tenancy.resolver import resolve_tenant_id

router = APIRouter(tags=["Subsites"])
logger = logging.getLogger(__name__)


# ── Pydantic schemas ───────────────────────────────────────────────────────────


class TenantCreate(BaseModel):
    title: str
    template: bool = False
    is_public: bool = True
    is_default: bool = False
    language: str | None = None
    theme: str | None = None
    page_type_denylist: list[str] = []


class DomainCreate(BaseModel):
    domain: str
    is_primary: bool = False


class TemplateInstanceCreate(BaseModel):
    title: str
    domain: str | None = None


class CurrentTenantUpdate(BaseModel):
    tenant_id: int


class TenantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    kind: str | None = None
    is_public: bool | None = None
    is_default: bool | None = None
    language: str | None = None
    theme: str | None = None
    template_id: int | None = None
    primary_domain: str | None = None

    @classmethod
    def from_tenant(cls, tenant: Tenant, primary_domain: str | None = None) -> "TenantResponse":
        return cls(
            id=tenant.id,
            title=tenant.title,
            kind=tenant.kind,
            is_public=tenant.is_public,
            is_default=tenant.is_default,
            language=tenant.language,
            theme=tenant.theme,
            template_id=tenant.template_id,
            primary_domain=primary_domain,
        )


class DomainResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    domain: str
    is_primary: bool


class ResolveResponse(BaseModel):
    host: str
    tenant_id: int


# ── Dependencies ───────────────────────────────────────────────────────────────


def get_tenant_context(request: Request) -> TenantContext:
    """Return the request's TenantContext, creating one if the middleware did not."""
    context = getattr(request.state, "tenant_context", None)
    if context is None:
        from subsites.middleware.tenant import build_tenant_context

        context = build_tenant_context(request)
        if not settings.enable_multitenancy:
            context.override = MAIN_SITE_ID
        request.state.tenant_context = context
    return context


async def get_scoped_db(
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> AsyncSession:
    """Database session whose site tree queries are scoped to the current subsite."""
    await context.scope(db)
    return db


async def require_main_site_admin(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not await has_main_site_permission(db, current_user, [ADMIN_CODE]):
        raise AuthorizationError(required_permission=ADMIN_CODE)
    return current_user


# ── Routes ─────────────────────────────────────────────────────────────────────


@router.get("/subsites", response_model=list[TenantResponse])
async def list_accessible_subsites(
    permission: list[str] = Query(default=[CMS_ACCESS_CMSMAIN]),
    include_main_site: bool = True,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tenants = await accessible_tenants(db, current_user, permission, include_main_site, settings.main_site_title)
    return [TenantResponse.from_tenant(t) for t in tenants]


@router.post("/subsites", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_subsite(
    payload: TenantCreate,
    current_user: User = Depends(require_main_site_admin),
    db: AsyncSession = Depends(get_db),
):
    tenant = await create_tenant(
        payload.title,
        db,
        template=payload.template,
        is_public=payload.is_public,
        is_default=payload.is_default,
        language=payload.language,
        theme=payload.theme,
        page_type_denylist=payload.page_type_denylist,
    )
    logger.info("Subsite %d created by user_id=%d", tenant.id, current_user.id)
    return TenantResponse.from_tenant(tenant)


@router.get("/subsites/current")
async def get_current_subsite(
    request: Request,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    tenant = await context.current_tenant(db)
    title = tenant.title if tenant is not None else settings.main_site_title
    return {
        "tenant_id": tenant.id if tenant is not None else MAIN_SITE_ID,
        "title": title,
        "domain": await get_primary_domain(db, tenant, request.headers.get("host")),
    }


@router.put("/subsites/current")
async def change_current_subsite(
    payload: CurrentTenantUpdate,
    context: TenantContext = Depends(get_tenant_context),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    allowed = await accessible_tenants(db, current_user, [CMS_ACCESS_CMSMAIN], True, settings.main_site_title)
    if payload.tenant_id not in {t.id for t in allowed}:
        raise AuthorizationError("You cannot access this subsite", required_permission=CMS_ACCESS_CMSMAIN)

    tenant = await get_tenant_or_404(payload.tenant_id, db) if payload.tenant_id else MAIN_SITE_ID
    context.change_tenant(tenant)
    return {"tenant_id": payload.tenant_id}


@router.get("/subsites/resolve", response_model=ResolveResponse)
async def resolve_host(
    host: str,
    current_user: User = Depends(require_main_site_admin),
    db: AsyncSession = Depends(get_db),
):
    return ResolveResponse(host=host, tenant_id=await resolve_tenant_id(db, host))


@router.get("/subsites/permissions")
async def list_subsite_permissions():
    return provide_permissions()


@router.get("/subsites/{tenant_id}", response_model=TenantResponse)
async def get_subsite(
    tenant_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tenant = await get_tenant_or_404(tenant_id, db)
    return TenantResponse.from_tenant(tenant, await get_primary_domain(db, tenant, request.headers.get("host")))


@router.post("/subsites/{tenant_id}/domains", response_model=DomainResponse, status_code=status.HTTP_201_CREATED)
async def bind_domain(
    tenant_id: int,
    payload: DomainCreate,
    current_user: User = Depends(require_main_site_admin),
    db: AsyncSession = Depends(get_db),
):
    binding: TenantDomain = await add_domain(tenant_id, payload.domain, db, is_primary=payload.is_primary)
    return DomainResponse.model_validate(binding)


@router.post("/subsites/{template_id}/instances", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def instantiate_template(
    template_id: int,
    payload: TemplateInstanceCreate,
    context: TenantContext = Depends(get_tenant_context),
    current_user: User = Depends(require_main_site_admin),
    db: AsyncSession = Depends(get_db),
):
    template = await get_tenant_or_404(template_id, db)
    if template.kind != "template":
        raise InvalidOperationError(f"Subsite {template_id} is not a template", details={"tenant_id": template_id})
    tenant = await create_from_template(db, template, payload.title, context, domain=payload.domain)
    return TenantResponse.from_tenant(tenant)


@router.post("/subsites/{tenant_id}/duplicate", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def duplicate_subsite(
    tenant_id: int,
    context: TenantContext = Depends(get_tenant_context),
    current_user: User = Depends(require_main_site_admin),
    db: AsyncSession = Depends(get_db),
):
    tenant = await get_tenant_or_404(tenant_id, db)
    copy = await duplicate_tenant(db, tenant, context)
    return TenantResponse.from_tenant(copy)
