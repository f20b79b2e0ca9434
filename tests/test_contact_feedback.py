"""Public contact and feedback forms, and their staff views."""
from app.hoa.db import session_scope
from app.hoa.models import SystemLog
from app.hoa.modules.feedback.service import validate_feedback_payload


def _contact(**overrides):
    payload = {
        "full_name": "Pedro Cruz",
        "email": "pedro@example.com",
        "phone_number": "09181234567",
        "subject": "Streetlight out",
        "message": "The streetlight on Acacia corner has been out for a week.",
    }
    payload.update(overrides)
    return payload


def _feedback(**overrides):
    payload = {
        "resident_name": "Pedro Cruz",
        "contact_email": "Pedro@Example.com",
        "subject": "Court lighting",
        "message": "Please extend the court lights until 10PM on weekends.",
        "category": "amenities",
        "rating": 4,
    }
    payload.update(overrides)
    return payload


def test_public_contact_needs_no_login_or_csrf(client, app):
    r = client.post("/api/public/contact", json=_contact())
    assert r.status_code == 201
    assert r.json["status"] == "NEW"
    with session_scope(app) as s:
        assert s.query(SystemLog).count() == 0


def test_contact_validation(client):
    r = client.post("/api/public/contact", json=_contact(full_name="P", email="nope", message="short"))
    assert r.status_code == 400
    assert r.json["errors"] == [
        "Full name must be at least 2 characters.",
        "Message must be at least 20 characters.",
        "Please enter a valid email address.",
    ]


def test_contact_staff_views(client, login):
    created = client.post("/api/public/contact", json=_contact()).json
    client.post(
        "/api/public/contact",
        json=_contact(
            full_name="Ana Reyes",
            email="ana@example.com",
            subject="Garbage pickup schedule",
            message="When is the garbage collected on Narra street?",
        ),
    )

    login("ADMIN")
    assert client.get("/api/contact").status_code == 403
    client.post("/auth/logout", json={})

    login("SUPERADMIN")
    r = client.get("/api/contact")
    assert len(r.json["data"]) == 2
    assert "pagination" not in r.json

    r = client.get("/api/contact?search=streetlight&page=1&limit=5")
    assert [c["id"] for c in r.json["data"]] == [created["id"]]
    assert r.json["pagination"]["total"] == 1

    r = client.post(f"/api/contact/{created['id']}/status", json={"status": "in_progress"})
    assert r.json["status"] == "IN_PROGRESS"
    assert client.post(f"/api/contact/{created['id']}/status", json={"status": "DONE"}).status_code == 400

    r = client.get("/api/contact?status=IN_PROGRESS")
    assert [c["id"] for c in r.json["data"]] == [created["id"]]

    r = client.post(f"/api/contact/{created['id']}/archive", json={})
    assert r.json["is_archived"] is True


def test_public_feedback(client, login):
    r = client.post("/api/public/feedback", json=_feedback())
    assert r.status_code == 201

    login("SUPERADMIN")
    r = client.get("/api/feedback?category=AMENITIES")
    [item] = r.json["data"]
    assert item["contact_email"] == "pedro@example.com"
    assert item["rating"] == 4
    assert item["allow_follow_up"] is True
    assert item["resident"] is None

    assert client.get("/api/feedback?status=LOST").status_code == 400


def test_feedback_rating_must_be_whole_number():
    assert "Rating must be a whole number from 1 to 5." in validate_feedback_payload(_feedback(rating=4.5))
    assert "Rating must be a whole number from 1 to 5." in validate_feedback_payload(_feedback(rating=6))
    assert validate_feedback_payload(_feedback(rating=None)) == []
