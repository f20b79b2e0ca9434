from app.hoa.db import session_scope
from app.hoa.models import SystemLog
from app.hoa.modules.whats_new.models import WhatsNew


def _payload(**overrides):
    payload = {
        "title": "Weekend market opens",
        "description": "Fresh produce every Saturday at the clubhouse.",
        "type": "NEWS",
        "category": "FOOD",
        "publication": "DRAFT",
    }
    payload.update(overrides)
    return payload


def test_admin_can_draft_but_not_publish(client, login, app):
    login("ADMIN")
    r = client.post("/api/whats-new", json=_payload())
    assert r.status_code == 201
    assert r.json["publication"] == "DRAFT"
    draft_id = r.json["id"]

    r = client.post("/api/whats-new", json=_payload(publication="PUBLISHED"))
    assert r.status_code == 403
    assert r.json["message"] == "Only a super admin can publish news and events."

    r = client.post(f"/api/whats-new/{draft_id}/edit", json=_payload(publication="published"))
    assert r.status_code == 403

    with session_scope(app) as s:
        assert s.query(WhatsNew).count() == 1
        assert s.get(WhatsNew, draft_id).publication == "DRAFT"
        assert s.query(SystemLog).filter(SystemLog.module == "WHATS_NEW").count() == 1


def test_superadmin_publishes(client, login, app):
    login("SUPERADMIN")
    r = client.post("/api/whats-new", json=_payload(publication="PUBLISHED", type="blog"))
    assert r.status_code == 201
    assert r.json["publication"] == "PUBLISHED"
    assert r.json["type"] == "BLOG"

    with session_scope(app) as s:
        log = s.query(SystemLog).filter(SystemLog.module == "WHATS_NEW").one()
        assert log.description == "created What's New (Weekend market opens) - Type: BLOG, Status: PUBLISHED"
        assert log.entity_type == "WhatsNew"


def test_accounting_cannot_manage(client, login):
    login("ACCOUNTING")
    r = client.post("/api/whats-new", json=_payload())
    assert r.status_code == 403
    assert r.json["message"] == "You do not have permission to manage news and events."
    assert client.get("/api/whats-new").status_code == 403


def test_validation_errors(client, login):
    login("ADMIN")
    r = client.post("/api/whats-new", json={"type": "GOSSIP", "category": "SPORTS", "publication": "LIVE"})
    assert r.status_code == 400
    assert r.json["errors"] == [
        "Title is required.",
        "Description is required.",
        "Type must be one of: BLOG, NEWS, GO_TO_PLACES, MEDIA_HUB",
        "Category must be one of: INVESTMENT, TRAVEL, SHOPPING, FOOD, LIFESTYLE, TECHNOLOGY, HEALTH, "
        "EDUCATION, ENTERTAINMENT, OTHER",
        "Publication must be one of: PUBLISHED, DRAFT",
    ]


def test_public_list_shows_published_featured_first(client, login):
    login("SUPERADMIN")
    old = client.post("/api/whats-new", json=_payload(title="Old", publication="PUBLISHED")).json
    featured = client.post(
        "/api/whats-new", json=_payload(title="Featured", publication="PUBLISHED", is_featured=True, type="BLOG")
    ).json
    newest = client.post("/api/whats-new", json=_payload(title="Newest", publication="PUBLISHED")).json
    draft = client.post("/api/whats-new", json=_payload(title="Draft")).json
    archived = client.post("/api/whats-new", json=_payload(title="Gone", publication="PUBLISHED")).json
    client.post(f"/api/whats-new/{archived['id']}/archive", json={})
    client.post("/auth/logout")

    r = client.get("/api/whats-new/published")
    assert r.status_code == 200
    assert [i["id"] for i in r.json["data"]] == [featured["id"], newest["id"], old["id"]]

    assert [i["id"] for i in client.get("/api/whats-new/published?limit=1").json["data"]] == [featured["id"]]
    assert [i["id"] for i in client.get("/api/whats-new/published?type=blog").json["data"]] == [featured["id"]]
    assert client.get("/api/whats-new/published?limit=0").status_code == 400
    assert client.get("/api/whats-new/published?type=GOSSIP").status_code == 400

    assert client.get(f"/api/whats-new/published/{newest['id']}").json["title"] == "Newest"
    assert client.get(f"/api/whats-new/published/{draft['id']}").status_code == 404
    assert client.get(f"/api/whats-new/published/{archived['id']}").status_code == 404

    assert client.get("/api/whats-new/summary").json == {"BLOG": 1, "NEWS": 2, "GO_TO_PLACES": 0, "MEDIA_HUB": 0}


def test_staff_list_filters_and_archive(client, login, app):
    login("ADMIN")
    first = client.post("/api/whats-new", json=_payload(title="First")).json
    second = client.post("/api/whats-new", json=_payload(title="Second", type="MEDIA_HUB")).json

    r = client.get("/api/whats-new")
    assert [i["id"] for i in r.json["data"]] == [second["id"], first["id"]]
    assert r.json["pagination"]["total"] == 2
    assert [i["id"] for i in client.get("/api/whats-new?type=media_hub").json["data"]] == [second["id"]]
    assert [i["id"] for i in client.get("/api/whats-new?search=firs").json["data"]] == [first["id"]]

    r = client.post(f"/api/whats-new/{first['id']}/archive", json={})
    assert r.json["is_archived"] is True
    assert [i["id"] for i in client.get("/api/whats-new").json["data"]] == [second["id"]]
    assert len(client.get("/api/whats-new?include_archived=true").json["data"]) == 2

    r = client.post(f"/api/whats-new/{first['id']}/archive", json={"is_archived": False})
    assert r.json["is_archived"] is False

    with session_scope(app) as s:
        logs = s.query(SystemLog).filter(SystemLog.module == "WHATS_NEW").order_by(SystemLog.id)
        actions = [log.action for log in logs]
        assert actions == ["CREATE", "CREATE", "ARCHIVE", "RETRIEVE"]
