"""
Pytest configuration and fixtures for the subsites tests
"""

import os
import sys
from collections.abc import AsyncGenerator
from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120

import subsites.database as database_module  # noqa: E402
import subsites.models  # noqa: E402, F401
from subsites.auth import create_access_token  # noqa: E402
from subsites.config import settings  # noqa: E402
from subsites.database import Base  # noqa: E402
from subsites.i18n import locale as locale_module  # noqa: E402
from subsites.services.access_service import AccessService  # noqa: E402
from subsites.services.content_service import create_node  # noqa: E402
from subsites.services.tenant_service import add_domain, create_tenant  # noqa: E402
from subsites.tenancy.accessible import accessible_tenants_cache  # noqa: E402
from subsites.tenancy.context import tenancy_state  # noqa: E402

# One shared in-memory connection per test, so the app's sessions see the fixture data
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(autouse=True)
def reset_tenancy(monkeypatch):
    """Process-wide tenancy state must not leak between tests."""
    monkeypatch.setattr(settings, "write_hostmap", False)
    monkeypatch.setattr(settings, "strict_subdomain_matching", False)
    monkeypatch.setattr(settings, "enable_multitenancy", True)
    accessible_tenants_cache.invalidate()
    tenancy_state.reset()
    locale_module._current_locale.set(None)
    yield
    accessible_tenants_cache.invalidate()
    tenancy_state.reset()


@pytest.fixture(scope="function")
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine, monkeypatch):
    """Point the application's session factory at the test engine."""
    factory = async_sessionmaker(test_engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
    monkeypatch.setattr(database_module, "AsyncSessionLocal", factory)
    return factory


@pytest.fixture(scope="function")
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def subsite_data(db: AsyncSession) -> SimpleNamespace:
    """
    Templates, subsites, domains, site trees, groups and members used
    across the suite.

    Subsites and their domains:
        Template            (template, no domains)
        Subsite1 Template   (template) subsite1.*
        Subsite2 Template   (template) subsite2.*
        Test 1              one.example.org (primary), one.*
        Test 2              two.mysite.com (primary), *.mysite.com
        Test 3              three.* (primary)
    """
    tenants = {}
    tenants["main"] = await create_tenant("Template", db, template=True)
    tenants["subsite1"] = await create_tenant("Subsite1 Template", db, template=True)
    tenants["subsite2"] = await create_tenant("Subsite2 Template", db, template=True)
    tenants["domaintest1"] = await create_tenant("Test 1", db)
    tenants["domaintest2"] = await create_tenant("Test 2", db)
    tenants["domaintest3"] = await create_tenant("Test 3", db)

    domains = {}
    domains["subsite1"] = await add_domain(tenants["subsite1"].id, "subsite1.*", db)
    domains["subsite2"] = await add_domain(tenants["subsite2"].id, "subsite2.*", db)
    domains["dt1a"] = await add_domain(tenants["domaintest1"].id, "one.example.org", db, is_primary=True)
    domains["dt1b"] = await add_domain(tenants["domaintest1"].id, "one.*", db)
    domains["dt2a"] = await add_domain(tenants["domaintest2"].id, "two.mysite.com", db, is_primary=True)
    domains["dt2b"] = await add_domain(tenants["domaintest2"].id, "*.mysite.com", db)
    domains["dt3"] = await add_domain(tenants["domaintest3"].id, "three.*", db, is_primary=True)

    pages = {}
    main_id = tenants["main"].id
    pages["home"] = await create_node(db, "Home", tenant_id=main_id, sort=1, publish=True)
    pages["about"] = await create_node(db, "About", tenant_id=main_id, sort=2, publish=True)
    pages["linky"] = await create_node(db, "Linky", tenant_id=main_id, meta_title="Linky", sort=3, publish=True)
    pages["staff"] = await create_node(db, "Staff", tenant_id=main_id, parent_id=pages["about"].id, publish=True)
    pages["contact"] = await create_node(db, "Contact Us", tenant_id=main_id, sort=4, publish=True)
    pages["importantpage"] = await create_node(db, "Important Page", tenant_id=main_id, sort=5, publish=True)
    subsite1_id = tenants["subsite1"].id
    pages["subsite1_home"] = await create_node(db, "Home", tenant_id=subsite1_id, publish=True)
    pages["subsite1_contactus"] = await create_node(db, "Contact Us", tenant_id=subsite1_id, publish=True)
    pages["subsite1_staff"] = await create_node(db, "Staff", tenant_id=subsite1_id, publish=True)
    subsite2_id = tenants["subsite2"].id
    pages["subsite2_home"] = await create_node(db, "Home", tenant_id=subsite2_id, publish=True)
    pages["subsite2_contactus"] = await create_node(db, "Contact Us", tenant_id=subsite2_id, publish=True)

    access = AccessService(db)
    groups = {}
    groups["admin"] = await access.create_group("Admin", "admin", access_all_subsites=True, permission_codes=["ADMIN"])
    groups["subsite1_group"] = await access.create_group(
        "subsite1_group",
        "subsite1_group",
        tenant_ids=[subsite1_id],
        permission_codes=["CMS_ACCESS_CMSMain", "CMS_ACCESS_SecurityAdmin"],
    )
    groups["subsite2_group"] = await access.create_group(
        "subsite2_group",
        "subsite2_group",
        tenant_ids=[subsite2_id],
        permission_codes=["CMS_ACCESS_CMSMain", "CMS_ACCESS_SecurityAdmin"],
    )
    groups["subsite1admins"] = await access.create_group(
        "subsite1admins",
        "subsite1admins",
        tenant_ids=[subsite1_id],
        permission_codes=["CMS_ACCESS_CMSMain", "ADMIN"],
    )
    groups["allsubsitesauthors"] = await access.create_group(
        "allsubsitesauthors",
        "allsubsitesauthors",
        access_all_subsites=True,
        permission_codes=["CMS_ACCESS_CMSMain"],
    )

    members = {}
    members["admin"] = await access.create_member("admin@test.com", first_name="Admin", surname="User")
    members["subsite1member"] = await access.create_member("subsite1member@test.com")
    members["subsite2member"] = await access.create_member("subsite2member@test.com")
    members["subsite1admin"] = await access.create_member("subsite1admin@test.com")
    members["allsubsitesauthor"] = await access.create_member("allsubsitesauthor@test.com")
    await access.add_member(groups["admin"].id, members["admin"].id)
    await access.add_member(groups["subsite1_group"].id, members["subsite1member"].id)
    await access.add_member(groups["subsite2_group"].id, members["subsite2member"].id)
    await access.add_member(groups["subsite1admins"].id, members["subsite1admin"].id)
    await access.add_member(groups["allsubsitesauthors"].id, members["allsubsitesauthor"].id)

    return SimpleNamespace(tenants=tenants, domains=domains, pages=pages, groups=groups, members=members)


def _auth_headers(email: str) -> dict:
    access_token = create_access_token(data={"sub": email}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def admin_auth_headers(subsite_data) -> dict:
    return _auth_headers(subsite_data.members["admin"].email)


@pytest.fixture
def member_auth_headers(subsite_data) -> dict:
    return _auth_headers(subsite_data.members["subsite1member"].email)


@pytest.fixture
def auth_headers_for():
    """Bearer token headers for the member with the given email."""
    return _auth_headers
