import pytest

from app.exceptions import InvalidMatchResult, TournamentGroupNotFound, TournamentMatchNotFound
from app.services.tournaments import (
    create_tournament,
    generate_cup_bracket,
    generate_round_robin_groups,
    playable_matches,
    process_walkovers,
    rank_group,
    record_bracket_result,
    record_group_result,
    round_name,
    sort_by_rating,
)
from app.services.validation import DEFAULT_LEGS_CONFIG, ValidationError


def _players(count):
    """p1 is the strongest, pN the weakest."""
    return [
        {"id": f"p{i}", "name": f"Player {i}", "ratings": {"501": 1600 - i * 10}}
        for i in range(1, count + 1)
    ]


def _at(bracket, round_, position, match_type="regular"):
    return next(
        m
        for m in bracket
        if m["round"] == round_ and m["position"] == position and m["matchType"] == match_type
    )


def _ids(match):
    return (
        match["player1"]["id"] if match["player1"] else None,
        match["player2"]["id"] if match["player2"] else None,
    )


def _cup(count, **extra):
    setup = {"name": "Cup", "format": "cup", "players": _players(count)}
    setup.update(extra)
    return create_tournament(setup)


def _win(tournament, round_, position, winner, score, match_type="regular"):
    match = _at(tournament["bracket"], round_, position, match_type)
    return record_bracket_result(tournament, match["id"], winner, score)


def test_sort_by_rating_is_stable():
    players = [{"id": "a"}, {"id": "b", "ratings": {"501": 1200}}, {"id": "c"}]
    assert [p["id"] for p in sort_by_rating(players, "501")] == ["b", "a", "c"]


def test_round_names():
    assert [round_name(r, 4) for r in (1, 2, 3, 4)] == [
        "Round 1",
        "Quarterfinal",
        "Semifinal",
        "Final",
    ]


def test_full_bracket_pairs_seeds():
    bracket = generate_cup_bracket(_players(8), 8, DEFAULT_LEGS_CONFIG)
    first_round = [_ids(_at(bracket, 1, pos)) for pos in range(4)]
    assert first_round == [("p1", "p8"), ("p4", "p5"), ("p3", "p6"), ("p2", "p7")]
    assert all(_at(bracket, 1, pos)["status"] == "ready" for pos in range(4))
    assert len(bracket) == 7
    assert _at(bracket, 1, 0)["legsToWin"] == DEFAULT_LEGS_CONFIG["quarterfinal"]
    assert _at(bracket, 2, 0)["legsToWin"] == DEFAULT_LEGS_CONFIG["semifinal"]
    assert _at(bracket, 3, 0)["legsToWin"] == DEFAULT_LEGS_CONFIG["final"]


def test_sixteen_bracket_pattern():
    bracket = generate_cup_bracket(_players(16), 16, DEFAULT_LEGS_CONFIG)
    seeds = [
        (_at(bracket, 1, pos)["player1"]["seed"], _at(bracket, 1, pos)["player2"]["seed"])
        for pos in range(8)
    ]
    assert seeds == [(1, 16), (8, 9), (5, 12), (4, 13), (3, 14), (6, 11), (7, 10), (2, 15)]


def test_byes_become_walkovers_and_advance():
    bracket = generate_cup_bracket(_players(5), 8, DEFAULT_LEGS_CONFIG)
    walkovers = [m for m in bracket if m["status"] == "walkover"]
    assert len(walkovers) == 3
    assert {m["winnerId"] for m in walkovers} == {"p1", "p2", "p3"}
    assert all(m["score"] == {"player1Legs": 0, "player2Legs": 0} for m in walkovers)

    assert _ids(_at(bracket, 1, 1)) == ("p4", "p5")
    assert _ids(_at(bracket, 2, 0)) == ("p1", None)
    assert _at(bracket, 2, 0)["status"] == "pending"
    assert _ids(_at(bracket, 2, 1)) == ("p3", "p2")
    assert _at(bracket, 2, 1)["status"] == "ready"


def test_four_bracket_round_one_uses_semifinal_legs():
    bracket = generate_cup_bracket(_players(4), 4, DEFAULT_LEGS_CONFIG, bronze_match_enabled=True)
    assert _at(bracket, 1, 0)["legsToWin"] == DEFAULT_LEGS_CONFIG["semifinal"]
    bronze = _at(bracket, 2, 1, "bronze")
    assert bronze["legsToWin"] == DEFAULT_LEGS_CONFIG["bronze"]
    assert bronze["status"] == "pending"


def test_process_walkovers_is_idempotent():
    bracket = generate_cup_bracket(_players(5), 8, DEFAULT_LEGS_CONFIG)
    assert process_walkovers(bracket) == bracket


def test_create_cup_tournament_record():
    tournament = _cup(6)
    assert tournament["status"] == "knockout"
    assert tournament["bracketSize"] == 8
    assert tournament["groups"] is None
    assert tournament["playerCount"] == 6
    assert tournament["createdAt"]
    assert tournament["completedAt"] is None


def test_cup_runs_to_completion_with_bronze():
    tournament = _cup(4, bronzeMatchEnabled=True)
    tournament = _win(tournament, 1, 0, "p1", {"player1Legs": 2, "player2Legs": 0})
    tournament = _win(tournament, 1, 1, "p3", {"player1Legs": 0, "player2Legs": 2})

    final = _at(tournament["bracket"], 2, 0)
    bronze = _at(tournament["bracket"], 2, 1, "bronze")
    assert _ids(final) == ("p1", "p3")
    assert final["status"] == "ready"
    assert _ids(bronze) == ("p4", "p2")
    assert bronze["status"] == "ready"

    tournament = _win(tournament, 2, 0, "p3", {"player1Legs": 1, "player2Legs": 3})
    assert tournament["status"] == "knockout"

    tournament = _win(tournament, 2, 1, "p2", {"player1Legs": 0, "player2Legs": 1}, "bronze")
    assert tournament["status"] == "completed"
    assert tournament["winnerId"] == "p3"
    assert tournament["secondPlaceId"] == "p1"
    assert tournament["thirdPlaceId"] == "p2"
    assert tournament["completedAt"] is not None


def test_three_player_cup_gives_uncontested_bronze():
    tournament = _cup(3, bronzeMatchEnabled=True)
    assert _at(tournament["bracket"], 1, 0)["status"] == "walkover"
    tournament = _win(tournament, 1, 1, "p2", {"player1Legs": 2, "player2Legs": 1})

    bronze = _at(tournament["bracket"], 2, 1, "bronze")
    assert bronze["status"] == "walkover"
    assert bronze["winnerId"] == "p3"

    tournament = _win(tournament, 2, 0, "p1", {"player1Legs": 3, "player2Legs": 0})
    assert tournament["status"] == "completed"
    assert tournament["winnerId"] == "p1"
    assert tournament["secondPlaceId"] == "p2"
    assert tournament["thirdPlaceId"] == "p3"


def test_record_result_does_not_mutate_input():
    tournament = _cup(4)
    snapshot = _at(tournament["bracket"], 1, 0)
    _win(tournament, 1, 0, "p1", {"player1Legs": 2, "player2Legs": 1})
    assert snapshot["status"] == "ready"
    assert snapshot["winnerId"] is None


def test_record_result_errors():
    tournament = _cup(4)
    with pytest.raises(TournamentMatchNotFound):
        record_bracket_result(tournament, "missing", "p1", {"player1Legs": 2, "player2Legs": 0})
    with pytest.raises(InvalidMatchResult):
        _win(tournament, 2, 0, "p1", {"player1Legs": 3, "player2Legs": 0})
    with pytest.raises(InvalidMatchResult):
        _win(tournament, 1, 0, "p2", {"player1Legs": 2, "player2Legs": 0})
    with pytest.raises(InvalidMatchResult):
        _win(tournament, 1, 0, "p1", {"player1Legs": 0, "player2Legs": 2})
    with pytest.raises(ValidationError):
        _win(tournament, 1, 0, "p1", {"player1Legs": 1, "player2Legs": 0})

    done = _win(tournament, 1, 0, "p1", {"player1Legs": 2, "player2Legs": 0})
    with pytest.raises(InvalidMatchResult):
        _win(done, 1, 0, "p1", {"player1Legs": 2, "player2Legs": 0})


def test_snake_draft_groups():
    groups = generate_round_robin_groups(_players(8), 2)
    assert [g["name"] for g in groups] == ["Group A", "Group B"]
    assert [p["id"] for p in groups[0]["players"]] == ["p1", "p4", "p5", "p8"]
    assert [p["id"] for p in groups[1]["players"]] == ["p2", "p3", "p6", "p7"]
    assert all(len(g["matches"]) == 6 for g in groups)
    assert all(m["status"] == "ready" for g in groups for m in g["matches"])


def test_rank_group_orders_by_points_then_leg_difference():
    standings = [
        {"id": "a", "points": 2, "legsFor": 3, "legsAgainst": 3},
        {"id": "b", "points": 4, "legsFor": 4, "legsAgainst": 2},
        {"id": "c", "points": 2, "legsFor": 4, "legsAgainst": 2},
        {"id": "d", "points": 2, "legsFor": 3, "legsAgainst": 3},
    ]
    assert [s["id"] for s in rank_group(standings)] == ["b", "c", "a", "d"]


def _round_robin(count, group_count=2, **extra):
    setup = {
        "name": "League",
        "format": "round_robin",
        "players": _players(count),
        "groupCount": group_count,
    }
    setup.update(extra)
    return create_tournament(setup)


def _play_group(tournament, group_index, winners):
    """Record every fixture of a group; ``winners`` maps pairs to the winner."""
    group = tournament["groups"][group_index]
    for match in group["matches"]:
        pair = frozenset((match["player1Id"], match["player2Id"]))
        winner = winners.get(pair, min(pair))
        score = (
            {"player1Legs": 1, "player2Legs": 0}
            if winner == match["player1Id"]
            else {"player1Legs": 0, "player2Legs": 1}
        )
        tournament = record_group_result(tournament, group["id"], match["id"], winner, score)
    return tournament


def test_round_robin_standings_and_knockout_seeding():
    tournament = _round_robin(4)
    assert tournament["status"] == "group_stage"
    assert all(m["status"] == "pending" for m in tournament["bracket"])
    assert len(playable_matches(tournament)) == 2

    group_a, group_b = tournament["groups"]
    assert [p["id"] for p in group_a["players"]] == ["p1", "p4"]
    assert [p["id"] for p in group_b["players"]] == ["p2", "p3"]

    tournament = _play_group(tournament, 0, {frozenset(("p1", "p4")): "p1"})
    standings = tournament["groups"][0]["players"]
    assert standings[0] == {
        "id": "p1",
        "name": "Player 1",
        "played": 1,
        "won": 1,
        "lost": 0,
        "legsFor": 1,
        "legsAgainst": 0,
        "points": 2,
    }
    assert standings[1]["lost"] == 1
    assert tournament["status"] == "group_stage"

    tournament = _play_group(tournament, 1, {frozenset(("p2", "p3")): "p3"})
    assert tournament["status"] == "knockout"
    semi_1 = _at(tournament["bracket"], 1, 0)
    semi_2 = _at(tournament["bracket"], 1, 1)
    assert _ids(semi_1) == ("p1", "p2")
    assert _ids(semi_2) == ("p3", "p4")
    assert semi_1["status"] == semi_2["status"] == "ready"
    assert [p["stage"] for p in playable_matches(tournament)] == ["knockout", "knockout"]
    assert playable_matches(tournament)[0]["roundName"] == "Semifinal"


def test_four_group_knockout_pairs_winners():
    tournament = _round_robin(8, group_count=4)
    assert [len(g["players"]) for g in tournament["groups"]] == [2, 2, 2, 2]
    for index in range(4):
        tournament = _play_group(tournament, index, {})
    winners = [rank_group(g["players"])[0]["id"] for g in tournament["groups"]]
    assert _ids(_at(tournament["bracket"], 1, 0)) == (winners[0], winners[1])
    assert _ids(_at(tournament["bracket"], 1, 1)) == (winners[2], winners[3])


def test_round_robin_runs_to_completion():
    tournament = _round_robin(4, bronzeMatchEnabled=True)
    tournament = _play_group(tournament, 0, {frozenset(("p1", "p4")): "p1"})
    tournament = _play_group(tournament, 1, {frozenset(("p2", "p3")): "p3"})
    tournament = _win(tournament, 1, 0, "p1", {"player1Legs": 2, "player2Legs": 0})
    tournament = _win(tournament, 1, 1, "p3", {"player1Legs": 2, "player2Legs": 1})
    tournament = _win(tournament, 2, 1, "p4", {"player1Legs": 0, "player2Legs": 1}, "bronze")
    tournament = _win(tournament, 2, 0, "p1", {"player1Legs": 3, "player2Legs": 2})
    assert tournament["status"] == "completed"
    assert (tournament["winnerId"], tournament["secondPlaceId"], tournament["thirdPlaceId"]) == (
        "p1",
        "p3",
        "p4",
    )


def test_group_result_errors():
    tournament = _round_robin(4)
    group = tournament["groups"][0]
    match = group["matches"][0]
    score = {"player1Legs": 1, "player2Legs": 0}
    with pytest.raises(TournamentGroupNotFound):
        record_group_result(tournament, "nope", match["id"], match["player1Id"], score)
    with pytest.raises(TournamentMatchNotFound):
        record_group_result(tournament, group["id"], "nope", match["player1Id"], score)
    with pytest.raises(InvalidMatchResult):
        record_group_result(tournament, group["id"], match["id"], "p2", score)

    done = record_group_result(tournament, group["id"], match["id"], match["player1Id"], score)
    with pytest.raises(InvalidMatchResult):
        record_group_result(done, group["id"], match["id"], match["player1Id"], score)


def test_group_legs_balance_after_completion():
    tournament = _round_robin(8)
    for index in range(2):
        tournament = _play_group(tournament, index, {})
    for group in tournament["groups"]:
        standings = group["players"]
        assert sum(s["legsFor"] for s in standings) == sum(s["legsAgainst"] for s in standings)
        assert sum(s["played"] for s in standings) == 2 * len(group["matches"])


def test_no_fillable_pending_match_after_generation():
    for count, size in ((3, 4), (5, 8), (9, 16), (12, 16)):
        bracket = generate_cup_bracket(_players(count), size, DEFAULT_LEGS_CONFIG)
        for match in bracket:
            if match["player1"] and match["player2"]:
                assert match["status"] != "pending"
