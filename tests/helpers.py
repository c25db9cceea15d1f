"""Small builders shared by the engine tests."""
from __future__ import annotations

from datetime import date

from compdesk.core.network import NetworkRow, NetworkTree, build_tree
from compdesk.models import Distributor, DistributorPeriod, Period


def row(id, sponsor=None, plan="Distribuidor", group=0, personal=0, name=None) -> NetworkRow:
    return NetworkRow(
        id=id,
        full_name=name or f"Distributor {id}",
        sponsor_id=sponsor,
        name_plan=plan,
        personal_points=personal,
        group_points=group,
    )


def tree_of(*rows: NetworkRow, root_id: int = 1) -> NetworkTree:
    return build_tree(list(rows), root_id)


def seed_network(session, rows, name_period="2025-01", start=date(2025, 1, 1), end=date(2025, 1, 31), status="open"):
    """Store ``rows`` as one period of distributor data and return the period."""

    period = Period(name_period=name_period, start_date=start, end_date=end, status=status)
    session.add(period)
    session.flush()
    for item in rows:
        if session.get(Distributor, item.id) is None:
            session.add(Distributor(id_customers=item.id, full_name=item.full_name, id_sponsor=item.sponsor_id))
            session.flush()
        session.add(
            DistributorPeriod(
                id_customers=item.id,
                id_period=period.id_period,
                name_plan=item.name_plan,
                personal_points=item.personal_points,
                group_points=item.group_points,
            )
        )
    session.commit()
    return period
