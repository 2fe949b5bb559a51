from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, ForeignKey, UniqueConstraint, CheckConstraint, DateTime, func
from .authz import Base, TimestampMixin, new_id


def allowed_action_key(action_id: str, module_id: Optional[str], submodule_id: Optional[str]) -> str:
    return f"{action_id}-{module_id or ''}-{submodule_id or ''}"


class Section(TimestampMixin, Base):
    __tablename__ = 'sections'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    name_key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    order: Mapped[int] = mapped_column('sort_order', Integer, nullable=False, default=0)
    # hidden sections belong to the System-Admin
    visibility: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    modules = relationship('Module', back_populates='section', order_by='Module.name')


class Module(TimestampMixin, Base):
    __tablename__ = 'modules'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    section_id: Mapped[str] = mapped_column(ForeignKey('sections.id'), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    name_key: Mapped[str] = mapped_column(String(100), nullable=False)
    route: Mapped[Optional[str]] = mapped_column(String(200))
    icon_name: Mapped[Optional[str]] = mapped_column(String(80))
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    section = relationship('Section', back_populates='modules')
    submodules = relationship('Submodule', back_populates='module', order_by='Submodule.name')

    __table_args__ = (UniqueConstraint('section_id', 'name_key', name='uq_module_section_name'),)


class Submodule(TimestampMixin, Base):
    __tablename__ = 'submodules'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    module_id: Mapped[str] = mapped_column(ForeignKey('modules.id'), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    name_key: Mapped[str] = mapped_column(String(100), nullable=False)
    route: Mapped[Optional[str]] = mapped_column(String(200))
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    module = relationship('Module', back_populates='submodules')

    __table_args__ = (UniqueConstraint('module_id', 'name_key', name='uq_submodule_module_name'),)


class PermissionAction(TimestampMixin, Base):
    __tablename__ = 'permission_actions'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    name_key: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AllowedAction(Base):
    __tablename__ = 'allowed_actions'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    action_id: Mapped[str] = mapped_column(ForeignKey('permission_actions.id'), nullable=False, index=True)
    module_id: Mapped[Optional[str]] = mapped_column(ForeignKey('modules.id'), nullable=True, index=True)
    submodule_id: Mapped[Optional[str]] = mapped_column(ForeignKey('submodules.id'), nullable=True, index=True)
    composite_key: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    action = relationship('PermissionAction')
    module = relationship('Module')
    submodule = relationship('Submodule')

    __table_args__ = (
        CheckConstraint(
            '(module_id IS NULL AND submodule_id IS NOT NULL) OR (module_id IS NOT NULL AND submodule_id IS NULL)',
            name='ck_allowed_action_target',
        ),
    )
