from __future__ import annotations
from datetime import time
from typing import Optional
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, ForeignKey, UniqueConstraint, CheckConstraint, Time
from bizadmin.constants.tenancy import DEFAULT_MAX_SUBSIDIARIES, DEFAULT_MAX_USERS, DEFAULT_MAX_ROLES
from .authz import Base, TimestampMixin, new_id


class Tenant(TimestampMixin, Base):
    __tablename__ = 'tenants'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    name_key: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    max_subsidiaries: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_MAX_SUBSIDIARIES)
    max_users: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_MAX_USERS)
    max_roles: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_MAX_ROLES)

    subsidiaries = relationship('Subsidiary', back_populates='tenant', order_by='Subsidiary.name')


class Subsidiary(TimestampMixin, Base):
    __tablename__ = 'subsidiaries'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    tenant_id: Mapped[str] = mapped_column(ForeignKey('tenants.id'), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    name_key: Mapped[str] = mapped_column(String(120), nullable=False)
    subsidiary_type: Mapped[str] = mapped_column(String(16), nullable=False)
    allow_negative_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    address: Mapped[Optional[str]] = mapped_column(String(255))
    city: Mapped[Optional[str]] = mapped_column(String(80))
    country: Mapped[Optional[str]] = mapped_column(String(80))
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    tenant = relationship('Tenant', back_populates='subsidiaries')
    roles = relationship('Role', back_populates='subsidiary')
    schedules = relationship('ScheduleSubsidiary', back_populates='subsidiary', cascade='all, delete-orphan')

    __table_args__ = (UniqueConstraint('tenant_id', 'name_key', name='uq_subsidiary_tenant_name'),)


class ScheduleSubsidiary(TimestampMixin, Base):
    __tablename__ = 'schedule_subsidiaries'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    subsidiary_id: Mapped[str] = mapped_column(ForeignKey('subsidiaries.id', ondelete='CASCADE'), nullable=False, index=True)
    tenant_id: Mapped[str] = mapped_column(ForeignKey('tenants.id'), nullable=False)
    start_day: Mapped[str] = mapped_column(String(16), nullable=False)
    end_day: Mapped[str] = mapped_column(String(16), nullable=False)
    opening_hour: Mapped[time] = mapped_column(Time, nullable=False)
    closing_hour: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    subsidiary = relationship('Subsidiary', back_populates='schedules')

    __table_args__ = (
        UniqueConstraint('subsidiary_id', 'start_day', 'end_day', 'opening_hour', 'closing_hour', name='uq_schedule_subsidiary_window'),
        CheckConstraint('opening_hour < closing_hour', name='ck_schedule_subsidiary_hours'),
    )
