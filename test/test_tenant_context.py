"""
Subsite context: precedence, switching, forced ids and query scoping.
"""

import pytest
from sqlalchemy import select

from subsites.exceptions import AmbiguousDomainError
from subsites.i18n import get_locale, likely_locale
from subsites.models.site_tree import ContentNode, ContentNodeLive
from subsites.models.tenant import MAIN_SITE_ID, Tenant
from subsites.tenancy.accessible import AccessibleTenantsCache
from subsites.tenancy.context import TenancyState, TenantContext
from subsites.tenancy.scoping import get_from_all_tenants, unbind_context


@pytest.fixture
def state():
    return TenancyState()


@pytest.fixture
def cache():
    return AccessibleTenantsCache()


def make_context(host=None, session=None, override=None, *, state, cache):
    return TenantContext(session=session, host=host, override=override, state=state, cache=cache)


class TestTenancyState:
    def test_defaults(self, state):
        assert state.filter_disabled is False
        assert state.forced_ids is None

    def test_force_single_id(self, state):
        state.force(3)
        assert state.forced_ids == (3,)

    def test_force_list(self, state):
        state.force([3, 4])
        assert state.forced_ids == (3, 4)

    def test_force_empty_list_rejected(self, state):
        with pytest.raises(ValueError):
            state.force([])

    def test_all_tenants_restores_flag(self, state):
        with state.all_tenants():
            assert state.filter_disabled is True
        assert state.filter_disabled is False

    def test_all_tenants_restores_flag_on_error(self, state):
        state.disable_filter()
        with pytest.raises(RuntimeError), state.all_tenants():
            raise RuntimeError("boom")
        assert state.filter_disabled is True
        state.enable_filter()
        assert state.filter_disabled is False

    def test_reset(self, state):
        state.force(1)
        state.disable_filter()
        state.reset()
        assert state.forced_ids is None
        assert state.filter_disabled is False


class TestCurrentTenantId:
    async def test_resolves_host_and_stores_in_session(self, db, subsite_data, state, cache):
        session = {}
        context = make_context("two.mysite.com", session, state=state, cache=cache)

        tenant_id = await context.current_tenant_id(db)

        assert tenant_id == subsite_data.tenants["domaintest2"].id
        assert session["SubsiteID"] == tenant_id

    async def test_session_value_wins_over_host(self, db, subsite_data, state, cache):
        session = {"SubsiteID": subsite_data.tenants["domaintest3"].id}
        context = make_context("two.mysite.com", session, state=state, cache=cache)

        assert await context.current_tenant_id(db) == subsite_data.tenants["domaintest3"].id

    async def test_override_wins_over_session_and_is_not_stored(self, db, subsite_data, state, cache):
        session = {"SubsiteID": subsite_data.tenants["domaintest3"].id}
        override = subsite_data.tenants["domaintest1"].id
        context = make_context("two.mysite.com", session, override, state=state, cache=cache)

        assert await context.current_tenant_id(db) == override
        assert session["SubsiteID"] == subsite_data.tenants["domaintest3"].id

    async def test_forced_id_wins_over_everything(self, db, subsite_data, state, cache):
        session = {"SubsiteID": subsite_data.tenants["domaintest3"].id}
        context = make_context(
            "two.mysite.com", session, subsite_data.tenants["domaintest1"].id, state=state, cache=cache
        )
        state.force([subsite_data.tenants["subsite1"].id, subsite_data.tenants["subsite2"].id])

        assert await context.current_tenant_id(db) == subsite_data.tenants["subsite1"].id

    async def test_session_value_of_main_site_is_kept(self, db, subsite_data, state, cache):
        context = make_context("two.mysite.com", {"SubsiteID": MAIN_SITE_ID}, state=state, cache=cache)

        assert await context.current_tenant_id(db) == MAIN_SITE_ID
        assert await context.current_tenant(db) is None

    async def test_ambiguous_host_propagates(self, db, subsite_data, state, cache):
        context = make_context("three.mysite.com", {}, state=state, cache=cache)

        with pytest.raises(AmbiguousDomainError):
            await context.current_tenant_id(db)
        assert "SubsiteID" not in context.session

    async def test_current_tenant(self, db, subsite_data, state, cache):
        context = make_context("one.example.org", {}, state=state, cache=cache)

        tenant = await context.current_tenant(db)
        assert tenant.title == "Test 1"


class TestChangeTenant:
    def test_stores_id_and_clears_override(self, state, cache):
        session = {}
        context = make_context(session=session, override=7, state=state, cache=cache)

        context.change_tenant(3)

        assert session["SubsiteID"] == 3
        assert context.override is None
        assert context.peek_tenant_id() == 3

    def test_invalidates_cache_only_when_id_changes(self, state, cache):
        context = make_context(session={"SubsiteID": 3}, state=state, cache=cache)
        key = cache.make_key(["ADMIN"], 1, True, "Main site")

        cache.set(key, [])
        context.change_tenant(3)
        assert len(cache) == 1

        context.change_tenant(4)
        assert len(cache) == 0

    def test_sets_locale_from_language(self, state, cache):
        context = make_context(state=state, cache=cache)

        context.change_tenant(Tenant(id=5, title="Deutsch", language="de"))
        assert get_locale() == "de_DE"

        context.change_tenant(Tenant(id=6, title="Österreich", language="de-AT"))
        assert get_locale() == "de_AT"

    def test_unknown_language_keeps_locale(self, state, cache):
        context = make_context(state=state, cache=cache)

        context.change_tenant(Tenant(id=5, title="Klingon", language="tlh"))
        assert get_locale() == "en_US"

    def test_activate_delegates_to_context(self, state, cache):
        session = {}
        context = make_context(session=session, state=state, cache=cache)

        Tenant(id=9, title="Nine").activate(context)
        assert session["SubsiteID"] == 9

    def test_likely_locale(self):
        assert likely_locale("de") == "de_DE"
        assert likely_locale("EN") == "en_US"
        assert likely_locale("pt_pt") == "pt_PT"
        assert likely_locale("xx") is None
        assert likely_locale("") is None


class TestUseTenant:
    def test_restores_previous_subsite(self, state, cache):
        session = {"SubsiteID": 2}
        context = make_context(session=session, override=5, state=state, cache=cache)

        with context.use_tenant(9) as tenant_id:
            assert tenant_id == 9
            assert context.peek_tenant_id() == 9

        assert session["SubsiteID"] == 2
        assert context.override == 5

    def test_restores_previous_subsite_on_error(self, state, cache):
        session = {"SubsiteID": 2}
        context = make_context(session=session, state=state, cache=cache)

        with pytest.raises(RuntimeError), context.use_tenant(9):
            raise RuntimeError("boom")

        assert session["SubsiteID"] == 2

    def test_removes_session_key_when_none_was_set(self, state, cache):
        session = {}
        context = make_context(session=session, state=state, cache=cache)

        with context.use_tenant(9):
            assert session["SubsiteID"] == 9

        assert "SubsiteID" not in session
        assert context.peek_tenant_id() is None

    def test_nested_guards_unwind_in_order(self, state, cache):
        session = {"SubsiteID": 1}
        context = make_context(session=session, state=state, cache=cache)

        with context.use_tenant(2):
            with context.use_tenant(3):
                assert context.peek_tenant_id() == 3
            assert context.peek_tenant_id() == 2
        assert context.peek_tenant_id() == 1


class TestScoping:
    async def test_scoped_queries_only_see_current_subsite(self, db, subsite_data, state, cache):
        context = make_context("subsite1.localhost", {}, state=state, cache=cache)
        tenant_id = await context.scope(db)

        result = await db.execute(select(ContentNodeLive))
        pages = result.scalars().all()

        assert tenant_id == subsite_data.tenants["subsite1"].id
        assert {p.title for p in pages} == {"Home", "Contact Us", "Staff"}
        assert {p.tenant_id for p in pages} == {tenant_id}
        unbind_context(db)

    async def test_scoping_applies_to_stage_table(self, db, subsite_data, state, cache):
        context = make_context("subsite2.localhost", {}, state=state, cache=cache)
        await context.scope(db)

        result = await db.execute(select(ContentNode).order_by(ContentNode.id))
        assert [p.title for p in result.scalars().all()] == ["Home", "Contact Us"]
        unbind_context(db)

    async def test_main_site_sees_only_main_site_rows(self, db, subsite_data, state, cache):
        context = make_context(session={"SubsiteID": MAIN_SITE_ID}, state=state, cache=cache)
        await context.scope(db)

        result = await db.execute(select(ContentNode))
        assert result.scalars().all() == []
        unbind_context(db)

    async def test_disabled_filter_returns_every_subsite(self, db, subsite_data, state, cache):
        context = make_context("subsite1.localhost", {}, state=state, cache=cache)
        await context.scope(db)

        with state.all_tenants():
            result = await db.execute(select(ContentNodeLive))
            assert len(result.scalars().all()) == len(subsite_data.pages)

        result = await db.execute(select(ContentNodeLive))
        assert len(result.scalars().all()) == 3
        unbind_context(db)

    async def test_forced_ids_scope_to_several_subsites(self, db, subsite_data, state, cache):
        context = make_context("subsite1.localhost", {}, state=state, cache=cache)
        await context.scope(db)
        state.force([subsite_data.tenants["subsite1"].id, subsite_data.tenants["subsite2"].id])

        result = await db.execute(select(ContentNodeLive))
        assert len(result.scalars().all()) == 5
        unbind_context(db)

    async def test_get_from_all_tenants_bypasses_scoping(self, db, subsite_data, state, cache):
        context = make_context("subsite1.localhost", {}, state=state, cache=cache)
        await context.scope(db)

        pages = await get_from_all_tenants(db, select(ContentNodeLive))
        assert len(pages) == len(subsite_data.pages)
        unbind_context(db)

    async def test_unbound_session_is_not_scoped(self, db, subsite_data):
        result = await db.execute(select(ContentNodeLive))
        assert len(result.scalars().all()) == len(subsite_data.pages)
