"""
Site tree models.

Each page is stored twice, mirroring the staging model of the content
store: ``ContentNode`` is the working (stage) copy, ``ContentNodeLive`` the
published copy sharing the same id. A page belongs to exactly one subsite;
its subsite never changes after creation. Top-level pages have
``parent_id == ROOT_PARENT_ID``.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import validates

from subsites.database import Base
from subsites.exceptions import InvalidOperationError
from subsites.tenancy.scoping import TenantScoped

ROOT_PARENT_ID = 0

# Columns copied when a page is cloned or published
CONTENT_FIELDS = (
    "title",
    "url_segment",
    "page_type",
    "body",
    "meta_title",
    "meta_description",
    "sort",
)


class SiteTreeColumns(TenantScoped):
    parent_id = Column(Integer, nullable=False, default=ROOT_PARENT_ID, index=True)
    title = Column(String(255), nullable=False)
    url_segment = Column(String(255), nullable=True)
    page_type = Column(String(100), nullable=False, default="Page")
    body = Column(Text, nullable=True)
    meta_title = Column(String(255), nullable=True)
    meta_description = Column(Text, nullable=True)
    sort = Column(Integer, nullable=False, default=0)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class ContentNode(SiteTreeColumns, Base):
    __tablename__ = "site_tree"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    __table_args__ = (Index("idx_site_tree_tenant_parent", "tenant_id", "parent_id"),)

    @validates("tenant_id")
    def _validate_tenant_id(self, key, value):
        current = self.__dict__.get("tenant_id")
        if self.__dict__.get("id") is not None and current is not None and value != current:
            raise InvalidOperationError(
                "A page cannot be moved to another subsite; duplicate it instead",
                details={"page_id": self.id, "tenant_id": current},
            )
        return value

    def __repr__(self) -> str:
        return f"<ContentNode id={self.id} tenant={self.tenant_id} parent={self.parent_id} title={self.title!r}>"


class ContentNodeLive(SiteTreeColumns, Base):
    __tablename__ = "site_tree_live"

    id = Column(Integer, primary_key=True, index=True, autoincrement=False)

    __table_args__ = (Index("idx_site_tree_live_tenant_parent", "tenant_id", "parent_id"),)
