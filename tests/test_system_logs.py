def test_system_logs_superadmin_only(client, login):
    login("ADMIN")
    r = client.get("/api/system-logs")
    assert r.status_code == 403
    assert "system logs" in r.json["message"]


def test_system_logs_list_and_filters(client, login, resident_payload):
    me = login("SUPERADMIN")
    resident = client.post("/api/residents", json=resident_payload()).json
    client.post(f"/api/residents/{resident['id']}/archive", json={"is_archived": True})

    r = client.get("/api/system-logs")
    assert r.status_code == 200
    assert [e["action"] for e in r.json["data"]] == ["ARCHIVE", "CREATE", "LOGIN"]
    newest = r.json["data"][0]
    assert newest["user"]["id"] == me["id"]
    assert newest["entity_id"] == str(resident["id"])
    assert "log_metadata" not in newest

    r = client.get("/api/system-logs?module=residents&action=CREATE")
    [entry] = r.json["data"]
    assert entry["metadata"]["is_head"] is True

    r = client.get("/api/system-logs?limit=1&page=3")
    assert [e["action"] for e in r.json["data"]] == ["LOGIN"]
    assert r.json["pagination"]["total"] == 3

    assert client.get(f"/api/system-logs?user_id={me['id']}").json["pagination"]["total"] == 3
    assert client.get("/api/system-logs?module=PARKING").status_code == 400
    assert client.get("/api/system-logs?user_id=abc").status_code == 400


def test_system_log_detail(client, login):
    login("SUPERADMIN")
    [entry] = client.get("/api/system-logs").json["data"]
    r = client.get(f"/api/system-logs/{entry['id']}")
    assert r.json["description"] == "logged in Account (super@example.com)"
    assert client.get("/api/system-logs/999").status_code == 404
