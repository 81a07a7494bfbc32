from app.config import API_PREFIX

BASE = f"{API_PREFIX}/v0/tournaments"


def _players(count):
    return [
        {"id": f"p{i}", "name": f"Player {i}", "ratings": {"501": 1500 - i}}
        for i in range(1, count + 1)
    ]


def _match(tournament, round_, position, match_type="regular"):
    return next(
        m
        for m in tournament["bracket"]
        if m["round"] == round_ and m["position"] == position and m["matchType"] == match_type
    )


def test_create_cup(client):
    resp = client.post(BASE, json={"name": "Cup", "format": "cup", "players": _players(5)})
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["tournament"]["bracketSize"] == 8
    assert data["tournament"]["legsConfig"]["final"] == 3
    # only the p4 v p5 opener and the p3 v p2 semifinal are playable
    assert len(data["playable"]) == 2
    assert data["playable"][0]["roundName"] == "Quarterfinal"


def test_create_validation_errors(client):
    resp = client.post(BASE, json={"name": "Cup", "format": "cup", "players": _players(2)})
    assert resp.status_code == 422
    assert resp.json()["code"] == "tournament_validation_error"

    resp = client.post(
        BASE,
        json={"name": "Cup", "format": "cup", "players": _players(4), "legsConfig": {"final": 9}},
    )
    assert resp.status_code == 422


def test_bracket_result_flow(client):
    tournament = client.post(
        BASE, json={"name": "Cup", "format": "cup", "players": _players(4)}
    ).json()["tournament"]

    semi = _match(tournament, 1, 0)
    resp = client.post(
        f"{BASE}/bracket-results",
        json={
            "tournament": tournament,
            "bracketMatchId": semi["id"],
            "winnerId": "p1",
            "score": {"player1Legs": 2, "player2Legs": 1},
            "matchId": "m-1",
        },
    )
    assert resp.status_code == 200
    tournament = resp.json()["tournament"]
    done = _match(tournament, 1, 0)
    assert done["status"] == "completed"
    assert done["matchId"] == "m-1"
    assert _match(tournament, 2, 0)["player1"]["id"] == "p1"


def test_bracket_result_errors(client):
    tournament = client.post(
        BASE, json={"name": "Cup", "format": "cup", "players": _players(4)}
    ).json()["tournament"]
    body = {
        "tournament": tournament,
        "bracketMatchId": "missing",
        "winnerId": "p1",
        "score": {"player1Legs": 2, "player2Legs": 0},
    }
    resp = client.post(f"{BASE}/bracket-results", json=body)
    assert resp.status_code == 404
    assert resp.json()["code"] == "tournament_match_not_found"

    body["bracketMatchId"] = _match(tournament, 2, 0)["id"]
    resp = client.post(f"{BASE}/bracket-results", json=body)
    assert resp.status_code == 409
    assert resp.json()["code"] == "tournament_invalid_result"

    body["bracketMatchId"] = _match(tournament, 1, 0)["id"]
    body["score"] = {"player1Legs": 2, "player2Legs": 2}
    resp = client.post(f"{BASE}/bracket-results", json=body)
    assert resp.status_code == 422


def test_group_result_flow(client):
    data = client.post(
        BASE,
        json={"name": "League", "format": "round_robin", "players": _players(4)},
    ).json()
    tournament = data["tournament"]
    assert tournament["status"] == "group_stage"
    assert [p["stage"] for p in data["playable"]] == ["group", "group"]

    for entry in data["playable"]:
        match = entry["match"]
        resp = client.post(
            f"{BASE}/group-results",
            json={
                "tournament": tournament,
                "groupId": entry["groupId"],
                "groupMatchId": match["id"],
                "winnerId": match["player1Id"],
                "score": {"player1Legs": 1, "player2Legs": 0},
            },
        )
        assert resp.status_code == 200, resp.text
        tournament = resp.json()["tournament"]

    assert tournament["status"] == "knockout"
    assert _match(tournament, 1, 0)["status"] == "ready"


def test_group_not_found(client):
    tournament = client.post(
        BASE,
        json={"name": "League", "format": "round_robin", "players": _players(4)},
    ).json()["tournament"]
    resp = client.post(
        f"{BASE}/group-results",
        json={
            "tournament": tournament,
            "groupId": "nope",
            "groupMatchId": "nope",
            "winnerId": "p1",
            "score": {"player1Legs": 1, "player2Legs": 0},
        },
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "tournament_group_not_found"
