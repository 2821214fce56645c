"""
SQLAlchemy ORM models (profiles, tasks, nudges, manager reports)
"""
from datetime import date as date_type, datetime
from sqlalchemy import String, Integer, Text, TIMESTAMP, Date, func, Boolean, Enum, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from flowtrack.domain.statuses import Role, TaskStatus, NudgeStatus, ReportStatus, enum_values
from flowtrack.infrastructure.db.session import Base


class User(Base):
    """
    User profile. Authentication lives outside this service; the row only
    carries what nudges and reports need (address, display name, hierarchy).
    """
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[Role] = mapped_column(
        Enum(Role, name="role_type", values_callable=enum_values),
        nullable=False,
        default=Role.USER,
        server_default=Role.USER.value,
    )
    manager_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Unknown"


class TaskModel(Base):
    """Tasks owned by users (read-only for the nudge/report engine)"""
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, name="task_status", values_callable=enum_values),
        nullable=False,
        default=TaskStatus.TODO,
        server_default=TaskStatus.TODO.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class NudgeConfigModel(Base):
    """Per-user nudge schedule: up to 3 local HH:MM slots in an IANA zone"""
    __tablename__ = "nudge_configs"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    times: Mapped[list] = mapped_column(JSONB, nullable=False)  # ["09:00", "13:00", "17:00"]
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, server_default="UTC")
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class NudgeModel(Base):
    """
    One materialized reminder instance.

    (user_id, scheduled_at) is unique: it is both the dedup key for
    materialization and the guard against overlapping sweeps.
    """
    __tablename__ = "nudges"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    scheduled_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)  # UTC
    sent_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    status: Mapped[NudgeStatus] = mapped_column(
        Enum(NudgeStatus, name="nudge_status", values_callable=enum_values),
        nullable=False,
        default=NudgeStatus.SCHEDULED,
        server_default=NudgeStatus.SCHEDULED.value,
    )
    payload: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint('user_id', 'scheduled_at', name='uq_nudge_user_slot'),
        Index('ix_nudges_due', 'scheduled_at', 'sent_at'),
    )


class ManagerReportModel(Base):
    """Daily team rollup, one row per (manager, report_date)"""
    __tablename__ = "manager_reports"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    manager_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    report_date: Mapped[date_type] = mapped_column(Date, nullable=False)

    sent_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus, name="report_status", values_callable=enum_values),
        nullable=False,
        default=ReportStatus.SCHEDULED,
        server_default=ReportStatus.SCHEDULED.value,
    )
    summary: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint('manager_id', 'report_date', name='uq_manager_report_date'),
    )
