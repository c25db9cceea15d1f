"""Database access helpers."""
from __future__ import annotations

import functools
import logging
import time
from datetime import date
from typing import Iterable, List, Sequence

from sqlalchemy import and_, extract, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, aliased

from compdesk.core.network import NetworkRow
from compdesk.core.promotions import PlanChange
from compdesk.errors import InvalidInput, UpstreamUnavailable
from compdesk.models import PERIOD_STATUS_ENUM, Distributor, DistributorPeriod, Period

logger = logging.getLogger(__name__)

RETRY_ATTEMPTS = 3
RETRY_BASE_DELAY = 0.25


def with_retry(func):
    """Retry a data access call on ``OperationalError`` with exponential backoff.

    After the last attempt the error surfaces as :class:`UpstreamUnavailable`.
    """

    @functools.wraps(func)
    def wrapper(db: Session, *args, **kwargs):
        delay = RETRY_BASE_DELAY
        for attempt in range(1, RETRY_ATTEMPTS + 1):
            try:
                return func(db, *args, **kwargs)
            except OperationalError as exc:
                db.rollback()
                if attempt == RETRY_ATTEMPTS:
                    logger.error("%s failed after %d attempts: %s", func.__name__, attempt, exc)
                    raise UpstreamUnavailable("The network database is unavailable, try again later") from exc
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                    func.__name__,
                    attempt,
                    RETRY_ATTEMPTS,
                    delay,
                    exc,
                )
                time.sleep(delay)
                delay *= 2

    return wrapper


# --- Periods ---


@with_retry
def list_periods(db: Session) -> Sequence[Period]:
    stmt = select(Period).order_by(Period.start_date.desc(), Period.id_period.desc())
    return db.execute(stmt).scalars().all()


@with_retry
def get_period(db: Session, period_id: int) -> Period | None:
    return db.get(Period, period_id)


@with_retry
def get_current_period(db: Session) -> Period | None:
    """The most recent open period, or the most recent period when none is open."""

    stmt = (
        select(Period)
        .where(Period.status == "open")
        .order_by(Period.start_date.desc(), Period.id_period.desc())
    )
    period = db.execute(stmt).scalars().first()
    if period is not None:
        return period
    stmt = select(Period).order_by(Period.start_date.desc(), Period.id_period.desc())
    return db.execute(stmt).scalars().first()


@with_retry
def get_previous_period(db: Session, period: Period) -> Period | None:
    stmt = (
        select(Period)
        .where(Period.start_date < period.start_date)
        .order_by(Period.start_date.desc(), Period.id_period.desc())
    )
    return db.execute(stmt).scalars().first()


@with_retry
def list_periods_ending_at(db: Session, period: Period, limit: int) -> Sequence[Period]:
    """Up to ``limit`` periods starting on or before ``period``, newest first."""

    stmt = (
        select(Period)
        .where(Period.start_date <= period.start_date)
        .order_by(Period.start_date.desc(), Period.id_period.desc())
        .limit(limit)
    )
    return db.execute(stmt).scalars().all()


@with_retry
def list_period_years(db: Session) -> List[int]:
    """Calendar years that hold at least one period, newest first."""

    year = extract("year", Period.start_date).label("year")
    stmt = select(year).distinct().order_by(year.desc())
    return [int(value) for value in db.execute(stmt).scalars()]


@with_retry
def list_periods_in_year(db: Session, year: int) -> Sequence[Period]:
    stmt = (
        select(Period)
        .where(Period.start_date >= date(year, 1, 1), Period.start_date <= date(year, 12, 31))
        .order_by(Period.start_date, Period.id_period)
    )
    return db.execute(stmt).scalars().all()


def create_period(
    db: Session,
    name_period: str,
    start_date: date,
    end_date: date,
    status: str = "closed",
) -> Period:
    if status not in PERIOD_STATUS_ENUM:
        raise InvalidInput(f"Unknown period status {status!r}")
    if end_date < start_date:
        raise InvalidInput("Period end date must not be before its start date")
    period = Period(name_period=name_period, start_date=start_date, end_date=end_date, status=status)
    db.add(period)
    db.commit()
    db.refresh(period)
    return period


# --- Distributors ---


@with_retry
def get_distributor(db: Session, distributor_id: int) -> Distributor | None:
    return db.get(Distributor, distributor_id)


@with_retry
def get_snapshot(db: Session, distributor_id: int, period_id: int) -> DistributorPeriod | None:
    stmt = select(DistributorPeriod).where(
        DistributorPeriod.id_customers == distributor_id,
        DistributorPeriod.id_period == period_id,
    )
    return db.execute(stmt).scalars().first()


@with_retry
def list_plan_changes(db: Session, period: Period, previous: Period) -> List[PlanChange]:
    """Plans of every distributor with a snapshot in both ``previous`` and ``period``."""

    prior = aliased(DistributorPeriod)
    stmt = (
        select(
            Distributor.id_customers,
            Distributor.full_name,
            prior.name_plan.label("previous_plan"),
            DistributorPeriod.name_plan.label("current_plan"),
        )
        .join(DistributorPeriod, DistributorPeriod.id_customers == Distributor.id_customers)
        .join(
            prior,
            and_(prior.id_customers == Distributor.id_customers, prior.id_period == previous.id_period),
        )
        .where(DistributorPeriod.id_period == period.id_period)
        .order_by(Distributor.id_customers)
    )
    return [
        PlanChange(
            id=row.id_customers,
            full_name=row.full_name,
            previous_plan=row.previous_plan,
            current_plan=row.current_plan,
        )
        for row in db.execute(stmt)
    ]


@with_retry
def load_network_rows(db: Session, root_id: int, period_id: int) -> List[NetworkRow]:
    """Fetch the root and its whole downline for a period in one query.

    The downline is walked with a recursive CTE over ``id_sponsor``. ``UNION``
    (rather than ``UNION ALL``) stops the recursion if the data holds a
    sponsorship loop. Distributors without a row for the period come back with
    no plan and zero points.
    """

    downline = (
        select(Distributor.id_customers, Distributor.id_sponsor)
        .where(Distributor.id_customers == root_id)
        .cte(name="downline", recursive=True)
    )
    member = aliased(Distributor)
    downline = downline.union(
        select(member.id_customers, member.id_sponsor).join(
            downline, member.id_sponsor == downline.c.id_customers
        )
    )

    stmt = (
        select(
            Distributor.id_customers,
            Distributor.full_name,
            Distributor.id_sponsor,
            DistributorPeriod.name_plan,
            DistributorPeriod.personal_points,
            DistributorPeriod.group_points,
        )
        .join(downline, downline.c.id_customers == Distributor.id_customers)
        .outerjoin(
            DistributorPeriod,
            and_(
                DistributorPeriod.id_customers == Distributor.id_customers,
                DistributorPeriod.id_period == period_id,
            ),
        )
        .order_by(Distributor.id_customers)
    )

    rows = [
        NetworkRow(
            id=row.id_customers,
            full_name=row.full_name,
            sponsor_id=None if row.id_customers == root_id else row.id_sponsor,
            name_plan=row.name_plan,
            personal_points=row.personal_points or 0,
            group_points=row.group_points or 0,
        )
        for row in db.execute(stmt)
    ]
    logger.info("Loaded %d network rows for root %s in period %s", len(rows), root_id, period_id)
    return rows


def store_network_rows(
    db: Session,
    period: Period,
    rows: Iterable[NetworkRow],
    currency_code: str | None = None,
) -> int:
    """Create or update distributors and their period snapshot from imported rows."""

    rows = list(rows)
    known = {row.id for row in rows}
    stored = 0

    # Distributors first so sponsor foreign keys resolve within the batch.
    for row in rows:
        distributor = db.get(Distributor, row.id)
        if distributor is None:
            distributor = Distributor(id_customers=row.id, full_name=row.full_name)
            if currency_code:
                distributor.currency_code = currency_code
            db.add(distributor)
        else:
            distributor.full_name = row.full_name
        db.flush()

    for row in rows:
        distributor = db.get(Distributor, row.id)
        sponsor_id = row.sponsor_id
        if sponsor_id is not None and sponsor_id not in known and db.get(Distributor, sponsor_id) is None:
            logger.warning("Sponsor %s of distributor %s is unknown; stored without sponsor", sponsor_id, row.id)
            sponsor_id = None
        distributor.id_sponsor = sponsor_id

        snapshot = (
            db.query(DistributorPeriod)
            .filter(
                DistributorPeriod.id_customers == row.id,
                DistributorPeriod.id_period == period.id_period,
            )
            .first()
        )
        if snapshot is None:
            snapshot = DistributorPeriod(id_customers=row.id, id_period=period.id_period)
            db.add(snapshot)
        snapshot.name_plan = row.name_plan
        snapshot.personal_points = row.personal_points
        snapshot.group_points = row.group_points
        stored += 1

    db.commit()
    logger.info("Stored %d distributor snapshots for period %s", stored, period.id_period)
    return stored


def reset_network_data(db: Session) -> None:
    """Delete every period, distributor and snapshot."""

    db.query(DistributorPeriod).delete()
    db.query(Distributor).update({Distributor.id_sponsor: None})
    db.query(Distributor).delete()
    db.query(Period).delete()
    db.commit()


__all__ = [
    "RETRY_ATTEMPTS",
    "reset_network_data",
    "with_retry",
    "list_periods",
    "get_period",
    "get_current_period",
    "get_previous_period",
    "list_periods_ending_at",
    "list_period_years",
    "list_periods_in_year",
    "list_plan_changes",
    "create_period",
    "get_distributor",
    "get_snapshot",
    "load_network_rows",
    "store_network_rows",
]
