def test_create_room_and_status(client):
    resp = client.post("/api/rooms", json={"code": "MEET1", "hostId": "alice"})
    assert resp.json() == {"ok": True, "code": "MEET1"}

    status = client.get("/api/rooms/MEET1").json()
    assert status == {"exists": True, "isActive": True, "hostId": "alice", "participants": []}


def test_duplicate_room_code_is_reported(client):
    client.post("/api/rooms", json={"code": "MEET1"})

    resp = client.post("/api/rooms", json={"code": "MEET1"})

    assert resp.status_code == 200
    assert resp.json() == {"ok": False, "error": "Room already exists"}


def test_create_room_without_code(client):
    resp = client.post("/api/rooms", json={"hostId": "alice"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is False
    assert "code" in body["error"]


def test_unknown_room_status(client):
    assert client.get("/api/rooms/NOPE").json() == {
        "exists": False, "isActive": False, "hostId": None, "participants": [],
    }


def test_end_unknown_room(client):
    assert client.post("/api/rooms/NOPE/end").json() == {"ok": False, "error": "not found"}


def test_end_room_without_channels(client):
    client.post("/api/rooms", json={"code": "MEET1", "hostId": "alice"})

    assert client.post("/api/rooms/MEET1/end").json() == {"ok": True}
    assert client.get("/api/rooms/MEET1").json()["isActive"] is False


def test_rtc_config(client):
    assert client.get("/api/config").json() == {"iceServers": [{"urls": "stun:stun.example.org:3478"}]}


def test_me_requires_identity(client):
    assert client.get("/api/me").status_code == 401
    resp = client.get("/api/me", headers={"X-User-Id": "unknown"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "not authenticated"}


def test_users_allow_duplicate_usernames(client):
    first = client.post("/api/users", json={"name": "Alice", "username": "alice", "email": "a@example.com"}).json()
    second = client.post("/api/users", json={"name": "Alice B", "username": "alice", "email": "a@example.com"}).json()

    assert first["ok"] and second["ok"]
    assert first["user"]["id"] != second["user"]["id"]

    me = client.get("/api/me", headers={"X-User-Id": first["user"]["id"]}).json()
    assert me["user"]["name"] == "Alice"


def test_history_requires_identity(client):
    assert client.get("/api/history").status_code == 401
    assert client.post("/api/history", json={"meetingCode": "R", "action": "joined"}).status_code == 401


def test_history_records_and_lists(client):
    user = client.post("/api/users", json={"name": "Bob", "username": "bob"}).json()["user"]
    headers = {"X-User-Id": user["id"]}

    resp = client.post("/api/history", json={"meetingCode": "R1", "action": "started"}, headers=headers)
    assert resp.json()["ok"] is True

    bad = client.post("/api/history", json={"meetingCode": "R1", "action": "left"}, headers=headers)
    assert bad.json()["ok"] is False

    history = client.get("/api/history", headers=headers).json()
    assert history["ok"] is True
    assert [(h["meeting_code"], h["action"]) for h in history["history"]] == [("R1", "started")]


def test_channel_join_is_logged_in_history(client):
    user = client.post("/api/users", json={"name": "Carol", "username": "carol"}).json()["user"]

    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "join-room", "room": "HIST", "user": {"id": user["id"], "username": "carol"}})
        assert ws.receive_json()["type"] == "existing-participants"

    history = client.get("/api/history", headers={"X-User-Id": user["id"]}).json()["history"]
    assert [(h["meeting_code"], h["action"]) for h in history] == [("HIST", "started")]
