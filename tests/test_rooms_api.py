from core.events import RoomEventBus
from models import RoomEventType
from api.deps import get_event_bus
from main import app


def _create(client, room_id="r1", duration=180, max_members=2, **extra):
    body = {"roomId": room_id, "Duration": duration, "maxMembers": max_members, "creator": "0xCreator"}
    body.update(extra)
    return client.post("/api/rooms/create", json=body)


def _join(client, room_id, wallet):
    return client.post("/api/room/join", json={"roomId": room_id, "walletAddress": wallet})


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_create_room(client):
    res = _create(client, stakingAmount=10, stakingToken="USDC")

    assert res.status_code == 200
    data = res.json()
    assert data["success"] is True
    assert data["roomId"] == "r1"
    assert data["stakingAmount"] == 10
    assert data["stakingToken"] == "USDC"
    assert data["maxMembers"] == 2


def test_create_room_defaults(client):
    res = client.post("/api/rooms/create", json={"duration": 60, "creator": "0xC"})

    assert res.status_code == 200
    data = res.json()
    assert data["roomId"]
    assert data["maxMembers"] == 6
    assert data["stakingAmount"] == 0
    assert data["stakingToken"] == "AST"


def test_create_duplicate_room(client):
    _create(client)
    res = _create(client)

    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "DUPLICATE_ROOM_ID"


def test_create_room_validates_body(client):
    assert client.post("/api/rooms/create", json={"roomId": "bad", "Duration": 0}).status_code == 422
    assert client.post("/api/rooms/create", json={"roomId": "bad"}).status_code == 422


def test_join_scenario(client):
    _create(client, room_id="r1", duration=180, max_members=2)

    res = _join(client, "r1", "0xA")
    assert res.status_code == 200
    data = res.json()
    assert 179 <= data["assignedDuration"] <= 180
    assert data["room"]["gameStarted"] is True
    assert data["room"]["startedAt"] is not None
    assert data["userOutcome"] == "created"

    res = _join(client, "r1", "0xB")
    assert res.status_code == 200
    assert res.json()["room"]["users"] == ["0xA", "0xB"]

    res = _join(client, "r1", "0xC")
    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "ROOM_FULL"


def test_join_missing_room(client):
    res = _join(client, "ghost", "0xA")

    assert res.status_code == 404
    assert res.json()["detail"]["code"] == "ROOM_NOT_FOUND"


def test_join_twice(client):
    _create(client, max_members=4)
    _join(client, "r1", "0xA")

    res = _join(client, "r1", "0xA")

    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "ALREADY_IN_ROOM"


def test_available_rooms(client):
    _create(client, room_id="open", max_members=3, stakingAmount=2)
    _create(client, room_id="full", max_members=1)
    _join(client, "full", "0xA")
    _join(client, "open", "0xB")

    res = client.get("/api/rooms/available")

    assert res.status_code == 200
    rooms = res.json()
    assert [r["roomId"] for r in rooms] == ["open"]
    entry = rooms[0]
    assert entry["totalPlayers"] == 3
    assert entry["playersInRoom"] == 1
    assert entry["users"] == ["0xB"]
    assert entry["duration"] == 180
    assert 179 <= entry["availableDuration"] <= 180
    assert entry["gameStarted"] is True
    assert entry["stakingAmount"] == 2
    assert entry["stakingToken"] == "AST"


def test_start_game(client):
    _create(client)
    _join(client, "r1", "0xA")

    res = client.post("/api/rooms/start-game", json={"roomId": "r1", "walletAddress": "0xA"})
    assert res.status_code == 200
    assert res.json()["started"] is False
    assert res.json()["room"]["gameStarted"] is True

    res = client.post("/api/rooms/start-game", json={"roomId": "r1", "walletAddress": "0xZ"})
    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "USER_NOT_IN_ROOM"


def test_make_winner_scenario(client):
    _create(client, room_id="r1", duration=180, max_members=2)
    _join(client, "r1", "0xA")
    _join(client, "r1", "0xB")

    res = client.post("/api/rooms/make-winner", json={"roomId": "r1", "walletAddress": "0xA"})

    assert res.status_code == 200
    data = res.json()
    assert data["completedRoom"]["roomId"] == "r1"
    assert data["completedRoom"]["winner"] == "0xA"
    assert data["completedRoom"]["gameEnded"] is True
    assert data["failedUpdates"] == []

    assert client.get("/api/rooms/r1").status_code == 404
    assert client.get("/api/room/r1").status_code == 404

    for wallet, is_winner in [("0xA", True), ("0xB", False)]:
        user = client.get(f"/api/user/{wallet}").json()
        assert user["participatedRooms"] == [{"room": "r1", "isWinner": is_winner, "gameTime": 180}]
        assert user["currentRoomId"] == ""
        assert user["currentRoomDuration"] == 0


def test_make_winner_not_member(client):
    _create(client)
    _join(client, "r1", "0xA")

    res = client.post("/api/rooms/make-winner", json={"roomId": "r1", "walletAddress": "0xZ"})

    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "USER_NOT_IN_ROOM"


def test_make_winner_stamps_leaderboard(client):
    _create(client)
    _join(client, "r1", "0xA")
    client.post("/api/leaderboard/add", json={
        "walletAddress": "0xA", "kills": 3, "score": 40, "roomId": "r1", "username": "alice"
    })
    client.post("/api/leaderboard/add", json={
        "walletAddress": "0xB", "kills": 1, "score": 10, "roomId": "r1", "username": "bob", "gameTime": "95"
    })

    client.post("/api/rooms/make-winner", json={"roomId": "r1", "walletAddress": "0xA"})

    entries = client.get("/api/leaderboard/room/r1").json()
    assert [e["gameTime"] for e in entries] == ["180", "95"]


def test_room_details(client):
    _create(client, duration=120, max_members=3)
    client.post("/api/user/setup", json={"walletAddress": "0xA", "username": "alice"})
    _join(client, "r1", "0xA")
    _join(client, "r1", "0xB")

    res = client.get("/api/rooms/r1")

    assert res.status_code == 200
    data = res.json()
    assert data["members"] == [
        {"walletAddress": "0xA", "username": "alice"},
        {"walletAddress": "0xB", "username": "Unknown"},
    ]
    assert data["duration"] == 120
    assert 119 <= data["remainingTime"] <= 120
    assert data["currentMembers"] == 2
    assert data["maxMembers"] == 3
    assert data["gameEnded"] is False
    assert data["winner"] is None


def test_raw_room(client):
    _create(client)

    res = client.get("/api/room/r1")

    assert res.status_code == 200
    assert res.json()["users"] == []
    assert res.json()["creator"] == "0xCreator"


def test_make_winner_reports_failed_recorders(client):
    def broken_recorder(db, event):
        raise RuntimeError("leaderboard offline")

    bus = RoomEventBus()
    bus.subscribe(RoomEventType.ROOM_COMPLETED, broken_recorder)
    app.dependency_overrides[get_event_bus] = lambda: bus

    _create(client)
    _join(client, "r1", "0xA")

    res = client.post("/api/rooms/make-winner", json={"roomId": "r1", "walletAddress": "0xA"})

    assert res.status_code == 200
    data = res.json()
    assert data["completedRoom"]["winner"] == "0xA"
    assert data["failedUpdates"] == []
    assert len(data["failedRecorders"]) == 1
    assert "broken_recorder" in data["failedRecorders"][0]["handler"]
    assert data["failedRecorders"][0]["error"] == "leaderboard offline"


def test_make_winner_without_recorder_failures(client):
    _create(client)
    _join(client, "r1", "0xA")

    res = client.post("/api/rooms/make-winner", json={"roomId": "r1", "walletAddress": "0xA"})

    assert res.json()["failedRecorders"] == []
