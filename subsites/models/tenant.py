"""
Subsite models.

A Tenant (subsite) is an isolated content and permission scope sharing one
deployment. It is reached through one or more TenantDomain patterns.
A TemplateTenant is a Tenant whose content tree can be copied into fresh
tenants.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, false, true
from sqlalchemy.orm import relationship

from subsites.database import Base
from subsites.i18n.locale import get_locale

# Tenant id 0 is the main site: no tenant scoping applies
MAIN_SITE_ID = 0


class Tenant(Base):
    __tablename__ = "subsites"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(String(20), nullable=False, default="subsite")
    title = Column(String(255), nullable=False, default="")
    redirect_url = Column(String(255), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False, server_default=false())
    # Hides unfinished/private subsites from domain resolution
    is_public = Column(Boolean, nullable=False, default=True, server_default=true())
    theme = Column(String(100), nullable=True)
    language = Column(String(6), nullable=True)
    page_type_denylist = Column(JSON, nullable=False, default=list)
    template_id = Column(Integer, ForeignKey("subsites.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    domains = relationship(
        "TenantDomain",
        back_populates="tenant",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {
        "polymorphic_on": kind,
        "polymorphic_identity": "subsite",
    }

    __table_args__ = (
        Index("idx_subsite_title", "title"),
        Index("idx_subsite_default", "is_default"),
    )

    def get_language(self) -> str:
        """The subsite's own language, or the active locale when unset."""
        return self.language or get_locale()

    def allows_page_type(self, page_type: str) -> bool:
        return page_type not in (self.page_type_denylist or [])

    def activate(self, context) -> None:
        """Make this subsite the current one for *context*."""
        context.change_tenant(self)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} title={self.title!r}>"


class TemplateTenant(Tenant):
    """A subsite that can be instantiated into new subsites."""

    __mapper_args__ = {"polymorphic_identity": "template"}


class TenantDomain(Base):
    __tablename__ = "subsite_domains"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("subsites.id", ondelete="CASCADE"), nullable=False, index=True)
    # May contain a leading "*." or trailing ".*" wildcard
    domain = Column(String(253), nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False, server_default=false())

    tenant = relationship("Tenant", back_populates="domains")

    __table_args__ = (Index("idx_subsite_domain_domain", "domain"),)

    def __repr__(self) -> str:
        return f"<TenantDomain {self.domain!r} tenant={self.tenant_id} primary={self.is_primary}>"
