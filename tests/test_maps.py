from app.hoa.db import session_scope
from app.hoa.models import SystemLog
from app.hoa.modules.maps.models import Lot


def _payload(**overrides):
    payload = {
        "block_no": "5",
        "lot_no": "2",
        "street": "Narra",
        "lot_size": 120,
        "house_type": "Bungalow",
        "min_price": 1500000,
        "max_price": 1800000,
        "payment_method": "Bank financing",
        "availability": "Available",
    }
    payload.update(overrides)
    return payload


def _sign_up(client, **overrides):
    payload = {
        "type_of_residency": "TENANT",
        "first_name": "Ana",
        "last_name": "Reyes",
        "sex": "FEMALE",
        "date_of_birth": "1990-01-01",
        "contact_number": "09170000000",
        "email_address": "ana@example.com",
        "block_no": "5",
        "lot_no": "2",
        "street": "Narra",
        "password": "ana-secret-1",
    }
    payload.update(overrides)
    r = client.post("/auth/sign-up", json=payload)
    assert r.status_code == 201, r.json
    return r.json


def test_superadmin_adds_lot_and_everyone_can_view(client, login, app):
    login("SUPERADMIN")
    r = client.post("/api/maps", json=_payload())
    assert r.status_code == 201
    assert r.json["location"] == "Block 5, Lot 2, Narra"
    lot_id = r.json["id"]

    with session_scope(app) as s:
        log = s.query(SystemLog).filter(SystemLog.module == "MAPS").one()
        assert log.action == "CREATE"
        assert log.entity_type == "Map"
        assert log.description == "created Map/Property (Block 5, Lot 2, Narra)"

    login("USER")
    r = client.get("/api/maps")
    assert [lot["id"] for lot in r.json["data"]] == [lot_id]
    assert client.get(f"/api/maps/{lot_id}").json["house_type"] == "Bungalow"
    assert client.get("/api/maps/999").status_code == 404


def test_only_superadmin_manages_the_map(client, login):
    login("ADMIN")
    r = client.post("/api/maps", json=_payload())
    assert r.status_code == 403
    assert r.json["message"] == "You do not have permission to manage the community map."


def test_map_requires_sign_in(client):
    assert client.get("/api/maps").status_code == 401


def test_validation_errors(client, login):
    login("SUPERADMIN")
    r = client.post("/api/maps", json=_payload(street="", lot_size="big", min_price=-1, max_price="inf"))
    assert r.status_code == 400
    assert r.json["errors"] == [
        "Street is required.",
        "Lot size must be a number.",
        "Minimum price must not be negative.",
        "Maximum price must be a number.",
    ]

    r = client.post("/api/maps", json=_payload(min_price=2000000, max_price=1000000))
    assert r.json["errors"] == ["Maximum price must not be below the minimum price."]


def test_edit_logs_availability_change_and_filter(client, login, app):
    login("SUPERADMIN")
    lot = client.post("/api/maps", json=_payload()).json
    other = client.post("/api/maps", json=_payload(block_no="6", availability="Reserved")).json

    r = client.get("/api/maps?available_only=true")
    assert [x["id"] for x in r.json["data"]] == [lot["id"]]

    r = client.post(f"/api/maps/{lot['id']}/edit", json=_payload(availability="Sold"))
    assert r.status_code == 200
    assert r.json["availability"] == "Sold"
    assert client.get("/api/maps?available_only=true").json["data"] == []
    assert len(client.get("/api/maps").json["data"]) == 2
    assert other["availability"] == "Reserved"

    with session_scope(app) as s:
        log = s.query(SystemLog).filter(SystemLog.module == "MAPS", SystemLog.action == "UPDATE").one()
        assert log.log_metadata == {"old_availability": "Available", "new_availability": "Sold"}


def test_sign_up_occupies_the_household_lot(client, login, app):
    login("SUPERADMIN")
    lot = client.post("/api/maps", json=_payload()).json
    client.post("/auth/logout")

    _sign_up(client)
    with session_scope(app) as s:
        assert s.get(Lot, lot["id"]).availability == "Occupied"
        assert s.query(Lot).count() == 1


def test_sign_up_adds_a_missing_lot_to_the_map(client, app):
    _sign_up(client, block_no="9", lot_no="", street="Molave")
    with session_scope(app) as s:
        lot = s.query(Lot).one()
        assert (lot.block_no, lot.lot_no, lot.street) == ("9", None, "Molave")
        assert lot.availability == "Occupied"
        assert lot.location == "Block 9, Molave"
