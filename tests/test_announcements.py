from app.hoa.db import session_scope
from app.hoa.models import SystemLog
from app.hoa.modules.announcements.models import Announcement


def _payload(**overrides):
    payload = {
        "title": "Water interruption",
        "category": "UTILITIES",
        "description": "No water supply on Saturday from 8AM to 5PM.",
        "publication": "DRAFT",
    }
    payload.update(overrides)
    return payload


def test_admin_can_draft_but_not_publish(client, login, app):
    login("ADMIN")
    r = client.post("/api/announcements", json=_payload())
    assert r.status_code == 201
    assert r.json["publication"] == "DRAFT"
    draft_id = r.json["id"]

    r = client.post("/api/announcements", json=_payload(publication="PUBLISHED"))
    assert r.status_code == 403
    assert r.json["message"] == "Only a super admin can publish announcements."

    r = client.post(f"/api/announcements/{draft_id}/edit", json=_payload(publication="published"))
    assert r.status_code == 403

    with session_scope(app) as s:
        assert s.query(Announcement).count() == 1
        assert s.get(Announcement, draft_id).publication == "DRAFT"
        assert s.query(SystemLog).filter(SystemLog.module == "ANNOUNCEMENTS").count() == 1


def test_superadmin_publishes(client, login, app):
    login("SUPERADMIN")
    r = client.post("/api/announcements", json=_payload(publication="PUBLISHED", schedule="2025-06-14T08:00:00Z"))
    assert r.status_code == 201
    assert r.json["publication"] == "PUBLISHED"
    assert r.json["schedule"] == "2025-06-14T08:00:00"

    with session_scope(app) as s:
        log = s.query(SystemLog).filter(SystemLog.module == "ANNOUNCEMENTS").one()
        assert log.description == "created Announcement (Water interruption) - Category: UTILITIES, Status: PUBLISHED"


def test_list_pinned_first_with_pagination(client, login):
    login("ADMIN")
    first = client.post("/api/announcements", json=_payload(title="First")).json
    pinned = client.post("/api/announcements", json=_payload(title="Pinned", is_pin=True)).json
    last = client.post("/api/announcements", json=_payload(title="Last", category="OTHER")).json

    r = client.get("/api/announcements")
    assert [a["id"] for a in r.json["data"]] == [pinned["id"], last["id"], first["id"]]
    assert r.json["pagination"]["total"] == 3

    r = client.get("/api/announcements?page=2&limit=2")
    assert [a["id"] for a in r.json["data"]] == [first["id"]]
    assert r.json["pagination"]["total_pages"] == 2

    r = client.get("/api/announcements?category=other")
    assert [a["id"] for a in r.json["data"]] == [last["id"]]

    r = client.get("/api/announcements?search=pinn")
    assert [a["id"] for a in r.json["data"]] == [pinned["id"]]

    assert client.get("/api/announcements?category=GOSSIP").status_code == 400


def test_archive_hides_from_default_list(client, login):
    login("ADMIN")
    a = client.post("/api/announcements", json=_payload()).json
    r = client.post(f"/api/announcements/{a['id']}/archive", json={})
    assert r.json["is_archived"] is True
    assert client.get("/api/announcements").json["data"] == []
    assert len(client.get("/api/announcements?include_archived=true").json["data"]) == 1


def test_validation(client, login):
    login("ADMIN")
    r = client.post("/api/announcements", json=_payload(title="", category="NEWS", schedule="soon"))
    assert r.status_code == 400
    assert r.json["errors"] == [
        "Title is required.",
        "Category must be one of: IMPORTANT, EMERGENCY, UTILITIES, OTHER",
        "Schedule must be an ISO date/time.",
    ]


def test_accounting_has_no_access(client, login):
    login("ACCOUNTING")
    assert client.get("/api/announcements").status_code == 403
