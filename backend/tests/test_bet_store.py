"""
backend/tests/test_bet_store.py

BetStore business rules against the in-memory repository.
"""

from __future__ import annotations

import pytest

from models.schemas import CurrentUser, Visibility
from services.exceptions import (
    AlreadyFinalized,
    BetClosed,
    BetDeleted,
    Forbidden,
    InvalidOption,
    LoginRequired,
    NotFound,
    PersistenceError,
    ValidationError,
)

from conftest import make_bet_data


# =====================================
# create / get / list
# =====================================

def test_create_bet_sets_defaults_and_creator(store, creator):
    bet = store.create_bet(
        {
            "title": "Placar",
            "options": ["1x0", "2x1"],
            "closing_at": "2026-10-20T18:00:00+00:00",
            "stake_amount": "5",
        },
        creator,
    )

    assert bet.visibility == Visibility.PUBLIC
    assert bet.allow_anonymous_voting is False
    assert bet.creator_email == "ana@example.com"
    assert bet.creator_name == "Ana"
    assert bet.final_result is None
    assert store.get_bet(bet.id) == bet


@pytest.mark.parametrize(
    "options",
    [
        ["only one"],
        [f"opt {i}" for i in range(11)],
        ["A", ""],
        ["A", "   "],
        ["A", "A"],
        ["A", 2],
    ],
)
def test_create_bet_rejects_invalid_options(store, creator, options):
    with pytest.raises(ValidationError):
        store.create_bet(
            {
                "title": "Placar",
                "options": options,
                "closing_at": "2026-10-20T18:00:00+00:00",
                "stake_amount": "5",
            },
            creator,
        )


def test_create_bet_accepts_ten_options(store, creator):
    bet = store.create_bet(make_bet_data(options=[f"opt {i}" for i in range(10)]), creator)
    assert len(bet.options) == 10


def test_create_bet_requires_creator(store):
    with pytest.raises(ValidationError):
        store.create_bet(make_bet_data(), None)


def test_create_bet_payload_name_overrides_display_name(store, creator):
    bet = store.create_bet(make_bet_data(creator_name="Aninha"), creator)
    assert bet.creator_name == "Aninha"


def test_get_missing_bet(store):
    with pytest.raises(NotFound):
        store.get_bet("missing")


def test_list_bets_visibility(store, creator, other_user):
    public = store.create_bet(make_bet_data(title="pública"), creator)
    private = store.create_bet(make_bet_data(title="privada", visibility="private"), creator)
    others_private = store.create_bet(make_bet_data(title="outra", visibility="private"), other_user)

    assert [bet.id for bet in store.list_bets()] == [public.id]
    assert [bet.id for bet in store.list_bets(creator.email)] == [private.id, public.id]
    assert [bet.id for bet in store.list_bets(other_user.email)] == [others_private.id, public.id]


def test_deleted_bets_disappear_from_reads(store, bet, creator):
    store.soft_delete_bet(bet.id, creator.email)

    assert store.list_bets() == []
    assert store.list_bets(creator.email) == []
    with pytest.raises(BetDeleted):
        store.get_bet(bet.id)
    with pytest.raises(NotFound):
        store.cast_vote(bet.id, "A", voter_name="Carla")


# =====================================
# votes
# =====================================

def test_cast_anonymous_vote(store, bet):
    vote = store.cast_vote(bet.id, "A", voter_name="  Carla ")

    assert vote.voter_identifier == "Carla"
    assert vote.chosen_option == "A"
    assert vote.considered_in_tally is True
    assert store.list_votes(bet.id) == [vote]


def test_anonymous_vote_needs_a_name(store, bet):
    with pytest.raises(ValidationError):
        store.cast_vote(bet.id, "A", voter_name="")


def test_logged_user_name_used_when_name_missing(store, bet, other_user):
    vote = store.cast_vote(bet.id, "B", user=other_user)
    assert vote.voter_identifier == "Bruno"


def test_login_required_bet(store, creator, other_user):
    bet = store.create_bet(make_bet_data(allow_anonymous_voting=False), creator)

    with pytest.raises(LoginRequired):
        store.cast_vote(bet.id, "A", voter_name="Carla")

    vote = store.cast_vote(bet.id, "A", voter_name="ignored", user=other_user)
    assert vote.voter_identifier == "Bruno"

    nameless = CurrentUser(email="nome@example.com")
    assert store.cast_vote(bet.id, "B", user=nameless).voter_identifier == "nome@example.com"


def test_vote_invalid_option(store, bet):
    with pytest.raises(InvalidOption):
        store.cast_vote(bet.id, "C", voter_name="Carla")


def test_vote_after_closing_time(store, bet, clock):
    clock.now = bet.closing_at
    with pytest.raises(BetClosed):
        store.cast_vote(bet.id, "A", voter_name="Carla")


def test_vote_after_finalization(store, bet, creator):
    store.finalize_bet(bet.id, "A", creator.email)
    with pytest.raises(BetClosed):
        store.cast_vote(bet.id, "A", voter_name="Carla")


def test_votes_are_appended(store, bet):
    first = store.cast_vote(bet.id, "A", voter_name="Carla")
    store.cast_vote(bet.id, "B", voter_name="Carla")

    votes = store.list_votes(bet.id)
    assert len(votes) == 2
    assert votes[0] == first


# =====================================
# finalize
# =====================================

def test_finalize_once(store, bet, creator):
    finalized = store.finalize_bet(bet.id, "B", creator.email)
    assert finalized.final_result == "B"

    with pytest.raises(AlreadyFinalized):
        store.finalize_bet(bet.id, "B", creator.email)
    with pytest.raises(AlreadyFinalized):
        store.finalize_bet(bet.id, "A", creator.email)

    assert store.get_bet(bet.id).final_result == "B"


def test_finalize_requires_creator(store, bet, other_user):
    with pytest.raises(Forbidden):
        store.finalize_bet(bet.id, "A", other_user.email)
    with pytest.raises(Forbidden):
        store.finalize_bet(bet.id, "A", None)


def test_finalize_invalid_option(store, bet, creator):
    with pytest.raises(InvalidOption):
        store.finalize_bet(bet.id, "Z", creator.email)
    assert store.get_bet(bet.id).final_result is None


def test_finalize_missing_bet(store, creator):
    with pytest.raises(NotFound):
        store.finalize_bet("missing", "A", creator.email)


def test_finalize_lost_race_reports_already_finalized(store, bet, creator, repository):
    original = repository.set_final_result

    def finalized_by_someone_else(bet_id, result):
        original(bet_id, "A")
        return original(bet_id, result)

    repository.set_final_result = finalized_by_someone_else

    with pytest.raises(AlreadyFinalized):
        store.finalize_bet(bet.id, "B", creator.email)
    assert store.get_bet(bet.id).final_result == "A"


def test_finalize_works_after_closing_time(store, bet, creator, clock):
    clock.now = bet.closing_at
    assert store.finalize_bet(bet.id, "A", creator.email).final_result == "A"


# =====================================
# soft delete
# =====================================

def test_soft_delete_requires_creator(store, bet, other_user):
    with pytest.raises(Forbidden):
        store.soft_delete_bet(bet.id, other_user.email)
    assert store.get_bet(bet.id).id == bet.id


def test_soft_delete_is_terminal(store, bet, creator, repository, clock):
    store.soft_delete_bet(bet.id, creator.email)

    assert repository.bets[bet.id]["deleted_at"] == clock()
    with pytest.raises(NotFound):
        store.soft_delete_bet(bet.id, creator.email)
    with pytest.raises(NotFound):
        store.finalize_bet(bet.id, "A", creator.email)


def test_soft_delete_finalized_bet(store, bet, creator):
    store.finalize_bet(bet.id, "A", creator.email)
    store.soft_delete_bet(bet.id, creator.email)
    with pytest.raises(BetDeleted):
        store.get_bet(bet.id)


# =====================================
# vote consideration
# =====================================

def test_toggle_vote_consideration(store, bet, creator):
    kept = store.cast_vote(bet.id, "A", voter_name="Carla")
    suspect = store.cast_vote(bet.id, "A", voter_name="Carla de novo")

    assert store.toggle_vote_consideration(suspect.id, creator.email) is False

    _, votes, result = store.get_bet_detail(bet.id)
    flags = {vote.id: vote.considered_in_tally for vote in votes}
    assert flags == {kept.id: True, suspect.id: False}
    assert result.tally == {"A": 1, "B": 0}

    assert store.toggle_vote_consideration(suspect.id, creator.email) is True
    assert store.get_bet_detail(bet.id)[2].tally == {"A": 2, "B": 0}


def test_toggle_vote_requires_creator(store, bet, other_user):
    vote = store.cast_vote(bet.id, "A", voter_name="Carla")
    with pytest.raises(Forbidden):
        store.toggle_vote_consideration(vote.id, other_user.email)


def test_toggle_missing_vote(store, creator):
    with pytest.raises(NotFound):
        store.toggle_vote_consideration("missing", creator.email)


# =====================================
# backend failures
# =====================================

def test_persistence_errors_propagate(store, creator, repository):
    def broken(data):
        raise PersistenceError("connection refused")

    repository.insert_bet = broken

    with pytest.raises(PersistenceError, match="connection refused"):
        store.create_bet(make_bet_data(), creator)
