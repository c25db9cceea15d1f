"""SQLAlchemy models for the distributor network source data."""
from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compdesk.database import Base

PERIOD_STATUS_ENUM = ("open", "closed")


class Period(Base):
    __tablename__ = "periods"

    id_period: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name_period: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="closed")

    snapshots: Mapped[list["DistributorPeriod"]] = relationship(
        back_populates="period", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_periods_date_range"),
    )


class Distributor(Base):
    __tablename__ = "distributors"

    id_customers: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    id_sponsor: Mapped[int | None] = mapped_column(
        ForeignKey("distributors.id_customers", ondelete="SET NULL"), nullable=True, index=True
    )
    date_register: Mapped[date | None] = mapped_column(Date, nullable=True)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    sponsor: Mapped["Distributor | None"] = relationship(remote_side=[id_customers])
    snapshots: Mapped[list["DistributorPeriod"]] = relationship(
        back_populates="distributor", cascade="all, delete-orphan"
    )


class DistributorPeriod(Base):
    """Rank and point volumes of one distributor within one period."""

    __tablename__ = "distributor_periods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id_customers: Mapped[int] = mapped_column(
        ForeignKey("distributors.id_customers", ondelete="CASCADE"), nullable=False
    )
    id_period: Mapped[int] = mapped_column(ForeignKey("periods.id_period", ondelete="CASCADE"), nullable=False)
    name_plan: Mapped[str | None] = mapped_column(String(50), nullable=True)
    personal_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    group_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    distributor: Mapped[Distributor] = relationship(back_populates="snapshots")
    period: Mapped[Period] = relationship(back_populates="snapshots")

    __table_args__ = (
        UniqueConstraint("id_customers", "id_period", name="uq_distributor_period"),
        CheckConstraint("personal_points >= 0", name="ck_distributor_periods_personal_nonneg"),
        CheckConstraint("group_points >= 0", name="ck_distributor_periods_group_nonneg"),
        Index("idx_distributor_periods_period", "id_period", "id_customers"),
    )
