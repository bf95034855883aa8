def _payloads(received, name):
    return [pkt["args"][0] for pkt in received if pkt["name"] == name]


def _create_and_join(socketio, flask_app):
    asha = socketio.test_client(flask_app)
    ben = socketio.test_client(flask_app)

    ack = asha.emit("create-room", {"displayName": "Asha"}, callback=True)
    assert ack["ok"] is True
    room_id = ack["roomId"]
    asha_id = _payloads(asha.get_received(), "room-created")[0]["memberId"]

    ack = ben.emit("join-room", {"roomId": room_id, "displayName": "Ben"}, callback=True)
    assert ack == {"ok": True, "roomId": room_id}
    ben_id = _payloads(ben.get_received(), "room-joined")[0]["memberId"]
    return room_id, (asha, asha_id), (ben, ben_id)


def test_create_room_ack_and_events(socketio, flask_app):
    asha = socketio.test_client(flask_app)

    ack = asha.emit("create-room", "Asha", callback=True)

    assert ack["ok"] is True
    received = asha.get_received()
    created = _payloads(received, "room-created")[0]
    assert created["roomId"] == ack["roomId"]
    assert created["isHost"] is True
    members = _payloads(received, "membership-changed")[0]
    assert [m["username"] for m in members] == ["Asha"]


def test_join_notifies_existing_members(socketio, flask_app):
    room_id, (asha, _), (ben, ben_id) = _create_and_join(socketio, flask_app)

    received = asha.get_received()
    assert _payloads(received, "member-joined") == [{"userId": ben_id, "username": "Ben"}]
    assert [m["username"] for m in _payloads(received, "membership-changed")[-1]] == ["Asha", "Ben"]


def test_errors_go_only_to_the_caller(socketio, flask_app):
    room_id, (asha, _), (ben, _) = _create_and_join(socketio, flask_app)
    asha.get_received()

    ack = ben.emit("start-draft", {"roomId": room_id}, callback=True)

    assert ack == {"ok": False, "error": "only_host"}
    errors = _payloads(ben.get_received(), "error")
    assert errors[0]["code"] == "only_host"
    assert _payloads(asha.get_received(), "error") == []


def test_join_missing_room_and_bad_name(socketio, flask_app):
    carl = socketio.test_client(flask_app)

    assert carl.emit("join-room", {"roomId": "NOPE1", "displayName": "Carl"}, callback=True) == {
        "ok": False,
        "error": "room_not_found",
    }
    assert carl.emit("create-room", {"displayName": "   "}, callback=True)["error"] == "invalid_payload"


def test_draft_pick_round_trip(socketio, flask_app):
    room_id, (asha, asha_id), (ben, ben_id) = _create_and_join(socketio, flask_app)
    asha.get_received()

    assert asha.emit("start-draft", room_id, callback=True) == {"ok": True}

    received = ben.get_received()
    started = _payloads(received, "draft-started")[0]
    assert sorted(entry["userId"] for entry in started["turnOrder"]) == sorted([asha_id, ben_id])
    update = _payloads(received, "turn-update")[0]
    acting_id = update["currentUserId"]
    acting, other_id = (asha, ben_id) if acting_id == asha_id else (ben, asha_id)
    asha.get_received()

    ack = acting.emit("select-item", {"roomId": room_id, "itemId": 3}, callback=True)

    assert ack == {"ok": True, "applied": True}
    received = ben.get_received()
    assert _payloads(received, "item-selected")[0]["player"] == {"id": 3, "name": "MS Dhoni"}
    assert len(_payloads(received, "item-list")[0]) == 19
    assert _payloads(received, "turn-update")[0]["currentUserId"] == other_id


def test_out_of_turn_pick_acks_without_events(socketio, flask_app):
    room_id, (asha, asha_id), (ben, ben_id) = _create_and_join(socketio, flask_app)
    asha.emit("start-draft", room_id)
    acting_id = _payloads(asha.get_received(), "turn-update")[0]["currentUserId"]
    ben.get_received()
    idle = ben if acting_id == asha_id else asha

    ack = idle.emit("select-item", {"roomId": room_id, "itemId": 1}, callback=True)

    assert ack == {"ok": True, "applied": False}
    assert asha.get_received() == []
    assert ben.get_received() == []


def test_turn_and_state_sync_are_unicast(socketio, flask_app):
    room_id, (asha, _), (ben, _) = _create_and_join(socketio, flask_app)
    asha.emit("start-draft", room_id)
    asha.get_received()
    ben.get_received()

    assert ben.emit("request-turn-sync", room_id, callback=True) == {"ok": True}
    assert ben.emit("request-state-sync", {"roomId": room_id}, callback=True) == {"ok": True}

    received = ben.get_received()
    assert _payloads(received, "turn-sync")[0]["totalTurns"] == 2
    assert _payloads(received, "state-sync")[0]["status"] == "drafting"
    assert asha.get_received() == []


def test_disconnect_and_reconnect(socketio, flask_app):
    room_id, (asha, asha_id), (ben, ben_id) = _create_and_join(socketio, flask_app)
    asha.emit("start-draft", room_id)
    asha.get_received()

    ben.disconnect()

    received = asha.get_received()
    gone = _payloads(received, "member-disconnected")[0]
    assert gone["userId"] == ben_id
    assert [m["username"] for m in _payloads(received, "membership-changed")[-1]] == ["Asha"]

    ben_again = socketio.test_client(flask_app)
    ack = ben_again.emit("reconnect", {"roomId": room_id, "displayName": "Ben"}, callback=True)

    assert ack == {"ok": True, "roomId": room_id}
    received = ben_again.get_received()
    assert _payloads(received, "room-rejoined")[0]["roomId"] == room_id
    state = _payloads(received, "state-sync")[0]
    assert [entry["username"] for entry in state["turnOrder"]][-1] == "Ben"
    assert _payloads(asha.get_received(), "member-reconnected")[0]["username"] == "Ben"


def test_http_room_state(socketio, flask_app, client):
    room_id, _, _ = _create_and_join(socketio, flask_app)

    res = client.get(f"/api/rooms/{room_id}")
    assert res.status_code == 200
    body = res.get_json()
    assert body["status"] == "waiting"
    assert [m["username"] for m in body["members"]] == ["Asha", "Ben"]

    assert client.get("/api/rooms/NOPE1").status_code == 404
    assert client.get("/api/health").get_json() == {"ok": True, "rooms": 1}


def test_item_and_member_lists_on_request(socketio, flask_app):
    room_id, (asha, _), (ben, _) = _create_and_join(socketio, flask_app)
    asha.get_received()

    assert ben.emit("get-items", room_id, callback=True) == {"ok": True}
    assert ben.emit("get-members", {"roomId": room_id}, callback=True) == {"ok": True}
    assert ben.emit("get-items", "NOPE1", callback=True) == {"ok": False}

    received = ben.get_received()
    assert len(_payloads(received, "item-list")[0]) == 20
    assert [m["username"] for m in _payloads(received, "membership-changed")[0]] == ["Asha", "Ben"]
    assert asha.get_received() == []


def test_legacy_reconnect_event_restores_seat(socketio, flask_app):
    room_id, (asha, _), (ben, _) = _create_and_join(socketio, flask_app)
    asha.emit("start-draft", room_id)
    ben.disconnect()
    asha.get_received()

    ben_again = socketio.test_client(flask_app)
    ack = ben_again.emit("reconnect-to-room", {"roomId": room_id, "username": "Ben"}, callback=True)

    assert ack == {"ok": True, "roomId": room_id}
    assert _payloads(ben_again.get_received(), "room-rejoined")[0]["roomId"] == room_id
    assert _payloads(asha.get_received(), "member-reconnected")[0]["username"] == "Ben"
