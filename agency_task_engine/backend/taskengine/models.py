# backend/taskengine/models.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


# -----------------------------
# Clients + packages
# -----------------------------
class Package(Base):
    __tablename__ = "packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    total_months: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    clients: Mapped[List["Client"]] = relationship(back_populates="package")


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    package_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("packages.id"), nullable=True, index=True)

    # start_date anchors the initial series; due_date is the contract end
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    renewal_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    renewal_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    package: Mapped[Optional["Package"]] = relationship(back_populates="clients")
    assignments: Mapped[List["Assignment"]] = relationship(back_populates="client", cascade="all, delete-orphan")


# -----------------------------
# Assets + assignments
# -----------------------------
class SiteAsset(Base):
    __tablename__ = "site_assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False, default="social_site")  # social_site|web2_site|other_asset
    default_posting_frequency: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class Assignment(Base):
    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    template_key: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    client: Mapped["Client"] = relationship(back_populates="assignments")
    tasks: Mapped[List["Task"]] = relationship(back_populates="assignment", cascade="all, delete-orphan")
    asset_settings: Mapped[List["AssignmentAssetSetting"]] = relationship(
        back_populates="assignment", cascade="all, delete-orphan"
    )


class AssignmentAssetSetting(Base):
    __tablename__ = "assignment_asset_settings"
    __table_args__ = (UniqueConstraint("assignment_id", "asset_id", name="uq_assignment_asset_settings"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    assignment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    asset_id: Mapped[int] = mapped_column(Integer, ForeignKey("site_assets.id"), nullable=False, index=True)
    required_frequency: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    assignment: Mapped["Assignment"] = relationship(back_populates="asset_settings")


# -----------------------------
# Tasks
# -----------------------------
class TaskCategory(Base):
    __tablename__ = "task_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    assignment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    asset_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("site_assets.id"), nullable=True, index=True)
    category_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("task_categories.id"), nullable=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # pending|in_progress|completed|overdue|cancelled|reassigned|qc_approved|paused|data_entered
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")  # low|medium|high|urgent
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    assignment: Mapped["Assignment"] = relationship(back_populates="tasks")
    asset: Mapped[Optional["SiteAsset"]] = relationship()
    category: Mapped[Optional["TaskCategory"]] = relationship()
