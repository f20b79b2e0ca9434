from datetime import date, datetime

import pytest

from app.hoa.db import session_scope
from app.hoa.models import User
from app.hoa.modules.amenity_reservations.models import AmenityReservation
from app.hoa.modules.dashboard.service import collection_by_month, period_range, statistics
from app.hoa.modules.monthly_dues.models import MonthlyDue
from app.hoa.modules.residents.models import Resident

NOW = datetime(2025, 3, 13, 15, 30)  # a Thursday


@pytest.mark.parametrize(
    "period, start, end",
    [
        ("daily", date(2025, 3, 13), date(2025, 3, 13)),
        ("weekly", date(2025, 3, 9), date(2025, 3, 13)),
        ("monthly", date(2025, 3, 1), date(2025, 3, 31)),
        ("annually", date(2025, 1, 1), date(2025, 12, 31)),
    ],
)
def test_period_range(period, start, end):
    lo, hi = period_range(period, NOW)
    assert lo == datetime.combine(start, datetime.min.time())
    assert hi.date() == end


def test_period_range_week_starting_on_sunday():
    lo, _ = period_range("weekly", datetime(2025, 3, 9, 8, 0))
    assert lo.date() == date(2025, 3, 9)


def test_period_range_unknown():
    with pytest.raises(ValueError):
        period_range("hourly", NOW)


@pytest.fixture()
def seeded(app):
    with session_scope(app) as s:
        head = Resident(
            type_of_residency="TENANT",
            first_name="Ana",
            last_name="Reyes",
            sex="FEMALE",
            date_of_birth=date(1990, 1, 1),
            contact_number="0917",
            is_head=True,
            block_no="5",
            street="Narra",
        )
        s.add(head)
        s.add(User(name="Lower", email="lower@example.com", password_hash="x", role="admin"))
        s.flush()
        for month, amount, status, created in (
            (3, 750.0, "APPROVED", NOW),
            (4, 300.0, "PENDING", NOW),
            (1, 750.0, "APPROVED", datetime(2025, 1, 5)),
        ):
            s.add(
                MonthlyDue(
                    resident_id=head.id, month=month, year=2025, amount_paid=amount, status=status, created_at=created
                )
            )
        s.add(
            AmenityReservation(
                user_type="TENANT",
                full_name="Ana Reyes",
                amenity="COURT",
                reservation_date=date(2025, 3, 20),
                start_time="08:00",
                end_time="10:00",
                number_of_guests=4,
                payment_method="CASH",
                amount_to_pay=200.0,
                amount_paid=200.0,
                status="APPROVED",
                payment_status="PAID",
                created_at=NOW,
            )
        )


def test_statistics_for_month(app, seeded):
    with session_scope(app) as s:
        stats = statistics(s, "monthly", NOW)

    assert stats["accounts"]["by_role"]["ADMIN"] == 2
    assert stats["residents"]["by_type"] == {"TENANT": 1}
    assert stats["monthly_dues"] == {"total": 2, "paid": 1, "pending": 1, "revenue": 750.0}
    assert stats["reservations"]["total"] == 1
    assert stats["reservations"]["by_status"] == {"APPROVED": 1}
    assert stats["reservations"]["revenue"] == 200.0
    assert {d["resident_name"] for d in stats["recent_monthly_dues"]} == {"Ana Reyes"}
    assert stats["period_range"]["start"] == "2025-03-01T00:00:00"


def test_collection_by_month(app, seeded):
    with session_scope(app) as s:
        rows = collection_by_month(s, 2025)
    assert rows[0] == {"month": "January", "collection": 750.0}
    assert rows[2] == {"month": "March", "collection": 950.0}
    assert rows[3]["collection"] == 300.0
    assert rows[11]["collection"] == 0.0


def test_dashboard_routes(client, login):
    login("ACCOUNTING")
    r = client.get("/api/dashboard/statistics?period=weekly")
    assert r.status_code == 200
    assert r.json["period"] == "weekly"
    assert client.get("/api/dashboard/statistics?period=hourly").status_code == 400

    r = client.get("/api/dashboard/collection?year=2025")
    assert len(r.json["data"]) == 12
    assert client.get("/api/dashboard/collection?year=99").status_code == 400


def test_dashboard_forbidden_for_residents(client, login):
    login("USER")
    assert client.get("/api/dashboard/statistics").status_code == 403
