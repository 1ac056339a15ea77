from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table, false
from sqlalchemy.orm import relationship

from subsites.database import Base

# Permission code that grants everything
ADMIN_CODE = "ADMIN"

group_members = Table(
    "group_members",
    Base.metadata,
    Column("group_id", Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

# Ignored for groups flagged access_all_subsites
group_subsites = Table(
    "group_subsites",
    Base.metadata,
    Column("group_id", Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column("tenant_id", Integer, ForeignKey("subsites.id", ondelete="CASCADE"), primary_key=True),
)

group_roles = Table(
    "group_roles",
    Base.metadata,
    Column("group_id", Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("permission_roles.id", ondelete="CASCADE"), primary_key=True),
)


# User model (the principal)
class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, index=True)
    email = Column(String, unique=True, nullable=False)
    first_name = Column(String, nullable=True)
    surname = Column(String, nullable=True)

    groups = relationship("Group", secondary=group_members, back_populates="members")


class Group(Base):
    __tablename__ = "groups"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    code = Column(String, unique=True, nullable=False)
    # Implicitly associated with every subsite
    access_all_subsites = Column(Boolean, nullable=False, default=False, server_default=false())

    members = relationship("User", secondary=group_members, back_populates="groups")
    subsites = relationship("Tenant", secondary=group_subsites)
    permissions = relationship("Permission", back_populates="group", cascade="all, delete-orphan")
    roles = relationship("Role", secondary=group_roles)


class Permission(Base):
    __tablename__ = "permissions"
    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)

    group = relationship("Group", back_populates="permissions")


# Role model: a named bundle of permission codes attached to groups
class Role(Base):
    __tablename__ = "permission_roles"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, unique=True, nullable=False)

    codes = relationship("RoleCode", back_populates="role", cascade="all, delete-orphan")


class RoleCode(Base):
    __tablename__ = "permission_role_codes"
    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("permission_roles.id", ondelete="CASCADE"), nullable=False, index=True)

    role = relationship("Role", back_populates="codes")
