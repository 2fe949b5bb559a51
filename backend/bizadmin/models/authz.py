from __future__ import annotations
import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column
from sqlalchemy import String, Boolean, ForeignKey, UniqueConstraint, CheckConstraint, DateTime, Time, func

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PermissionLevel(str, enum.Enum):
    SECTION = 'SECTION'
    MODULE = 'MODULE'
    SUBMODULE = 'SUBMODULE'


@dataclass(frozen=True)
class PermissionTarget:
    """Where a grant applies. Ancestor ids are always filled in."""
    level: PermissionLevel
    section_id: str
    module_id: Optional[str] = None
    submodule_id: Optional[str] = None

    @property
    def target_id(self) -> str:
        if self.level is PermissionLevel.SUBMODULE:
            return self.submodule_id
        if self.level is PermissionLevel.MODULE:
            return self.module_id
        return self.section_id


def permission_key(role_id: str, action_id: str, target: PermissionTarget) -> str:
    return '-'.join([role_id, action_id, target.section_id, target.module_id or '', target.submodule_id or ''])


# --- Core Models ---
class Role(TimestampMixin, Base):
    __tablename__ = 'roles'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    tenant_id: Mapped[Optional[str]] = mapped_column(ForeignKey('tenants.id'), nullable=True, index=True)
    subsidiary_id: Mapped[Optional[str]] = mapped_column(ForeignKey('subsidiaries.id'), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    name_key: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255))
    template: Mapped[str] = mapped_column(String(32), nullable=False, default='CUSTOM')
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    permissions = relationship('RolePermission', back_populates='role', cascade='all, delete-orphan')
    users = relationship('User', back_populates='role')
    subsidiary = relationship('Subsidiary', back_populates='roles')

    __table_args__ = (UniqueConstraint('tenant_id', 'subsidiary_id', 'name_key', name='uq_role_scope_name'),)


class RolePermission(Base):
    __tablename__ = 'role_permissions'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    role_id: Mapped[str] = mapped_column(ForeignKey('roles.id', ondelete='CASCADE'), nullable=False, index=True)
    action_id: Mapped[str] = mapped_column(ForeignKey('permission_actions.id'), nullable=False)
    tenant_id: Mapped[Optional[str]] = mapped_column(ForeignKey('tenants.id'), nullable=True)
    level: Mapped[str] = mapped_column(String(16), nullable=False)
    section_id: Mapped[str] = mapped_column(ForeignKey('sections.id'), nullable=False)
    module_id: Mapped[Optional[str]] = mapped_column(ForeignKey('modules.id'), nullable=True)
    submodule_id: Mapped[Optional[str]] = mapped_column(ForeignKey('submodules.id'), nullable=True)
    permission_key: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    role = relationship('Role', back_populates='permissions')
    action = relationship('PermissionAction')
    section = relationship('Section')
    module = relationship('Module')
    submodule = relationship('Submodule')

    __table_args__ = (
        CheckConstraint(
            "(level = 'SECTION' AND module_id IS NULL AND submodule_id IS NULL)"
            " OR (level = 'MODULE' AND module_id IS NOT NULL AND submodule_id IS NULL)"
            " OR (level = 'SUBMODULE' AND module_id IS NOT NULL AND submodule_id IS NOT NULL)",
            name='ck_role_permission_level',
        ),
    )

    @property
    def target(self) -> PermissionTarget:
        return PermissionTarget(PermissionLevel(self.level), self.section_id, self.module_id, self.submodule_id)


class User(TimestampMixin, Base):
    __tablename__ = 'users'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    username: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(128))
    lastname: Mapped[Optional[str]] = mapped_column(String(128))
    email: Mapped[Optional[str]] = mapped_column(String(128))
    role_id: Mapped[str] = mapped_column(ForeignKey('roles.id'), nullable=False, index=True)
    subsidiary_id: Mapped[str] = mapped_column(ForeignKey('subsidiaries.id'), nullable=False, index=True)
    # null only for the System-Admin sentinel
    tenant_id: Mapped[Optional[str]] = mapped_column(ForeignKey('tenants.id'), nullable=True, index=True)
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    role = relationship('Role', back_populates='users')
    schedules = relationship('ScheduleUser', back_populates='user', cascade='all, delete-orphan')

    __table_args__ = (UniqueConstraint('subsidiary_id', 'username', name='uq_user_subsidiary_username'),)

    def set_password(self, raw: str):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        from werkzeug.security import check_password_hash
        return check_password_hash(self.password_hash, raw)


class ScheduleUser(TimestampMixin, Base):
    __tablename__ = 'schedule_users'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    tenant_id: Mapped[Optional[str]] = mapped_column(ForeignKey('tenants.id'), nullable=True)
    subsidiary_id: Mapped[str] = mapped_column(ForeignKey('subsidiaries.id'), nullable=False)
    start_day: Mapped[str] = mapped_column(String(16), nullable=False)
    end_day: Mapped[str] = mapped_column(String(16), nullable=False)
    opening_hour: Mapped[time] = mapped_column(Time, nullable=False)
    closing_hour: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    user = relationship('User', back_populates='schedules')

    __table_args__ = (
        UniqueConstraint('user_id', 'start_day', 'end_day', 'opening_hour', 'closing_hour', name='uq_schedule_user_window'),
        CheckConstraint('opening_hour < closing_hour', name='ck_schedule_user_hours'),
    )
