"""Tests for the CPU strength policies.

Most scenarios use a small hand-made table for the position
player (1, 3) vs ai (1, 2), ai to move, whose five legal moves all lead to
different keys:

    m0 ai L -> player L   "2,3|1,2|player"
    m1 ai L -> player R   "1,4|1,2|player"
    m2 ai R -> player L   "3,3|1,2|player"
    m3 ai R -> player R   "0,1|1,2|player"
    m4 ai split 0/3       "1,3|0,3|player"

Table outcomes are for the player (to move), so they read inverted for the AI.
"""

import pytest

from _01_simulator import engine, rules, state
from _01_simulator.actions import Attack, Split
from _02_agents.outcomes import MoveClassifier, OutcomeBuckets, Perspective
from _02_agents.solver.search import SearchEngine
from _02_agents.strength import (
    Strength,
    StrengthPolicy,
    pick_best_win,
    pick_longest_loss,
    pick_loss_with_min_distance,
)
from _02_agents.tablebase.endgame import Outcome, TablebaseEntry
from _02_agents.tablebase.storage import TablebaseStore

POSITION = state.State((1, 3), (1, 2))

M0 = Attack(rules.AI, 0, rules.PLAYER, 0)
M1 = Attack(rules.AI, 0, rules.PLAYER, 1)
M2 = Attack(rules.AI, 1, rules.PLAYER, 0)
M3 = Attack(rules.AI, 1, rules.PLAYER, 1)
M4 = Split(rules.AI, 0, 3)


def _table(**outcomes):
    """Store from ``key=(outcome, distance)`` pairs, keyed by move name."""
    keys = {
        "m0": "2,3|1,2|player",
        "m1": "1,4|1,2|player",
        "m2": "3,3|1,2|player",
        "m3": "0,1|1,2|player",
        "m4": "1,3|0,3|player",
    }
    entries = {keys[name]: TablebaseEntry(Outcome(value[0]), value[1]) for name, value in outcomes.items()}
    return TablebaseStore.from_entries(entries)


FULL = dict(
    m0=("LOSS", 6),  # ai wins in 6
    m1=("LOSS", 2),  # ai wins in 2
    m2=("DRAW", 0),
    m3=("WIN", 5),  # ai loses in 5
    m4=("WIN", 11),  # ai loses in 11
)


def _policy(strength, store, rng):
    return StrengthPolicy(strength, MoveClassifier(store), rng=rng)


def test_position_moves():
    assert engine.generate_moves(POSITION, rules.AI) == [M0, M1, M2, M3, M4]


def test_classifier_inverts_for_the_actor():
    classifier = MoveClassifier(_table(**FULL))
    actor_view = classifier.evaluate(POSITION, rules.AI, Perspective.ACTOR)
    opponent_view = classifier.evaluate(POSITION, rules.AI, Perspective.OPPONENT)
    assert [e.outcome for e in actor_view] == [Outcome.WIN, Outcome.WIN, Outcome.DRAW, Outcome.LOSS, Outcome.LOSS]
    assert [e.outcome for e in opponent_view] == [Outcome.LOSS, Outcome.LOSS, Outcome.DRAW, Outcome.WIN, Outcome.WIN]
    assert [e.distance for e in actor_view] == [6, 2, 0, 5, 11]
    assert all(e.source == "table" for e in actor_view)


def test_unclassified_moves_are_skipped_without_engine():
    classifier = MoveClassifier(_table(m2=("DRAW", 0)))
    assert [e.move for e in classifier.evaluate(POSITION, rules.AI)] == [M2]


class TestHard:
    def test_shortest_win(self, scripted_rng):
        assert _policy(Strength.HARD, _table(**FULL), scripted_rng()).choose(POSITION, rules.AI) == M1

    def test_draw_when_no_win(self, scripted_rng):
        store = _table(m2=("DRAW", 0), m3=("WIN", 5), m4=("WIN", 11))
        assert _policy(Strength.HARD, store, scripted_rng()).choose(POSITION, rules.AI) == M2

    def test_longest_loss_when_lost(self, scripted_rng):
        store = _table(m3=("WIN", 5), m4=("WIN", 11))
        assert _policy(Strength.HARD, store, scripted_rng()).choose(POSITION, rules.AI) == M4

    def test_full_table_takes_immediate_kill(self, store, scripted_rng):
        game_state = state.State((0, 1), (1, 4))
        policy = StrengthPolicy(Strength.HARD, MoveClassifier(store), rng=scripted_rng())
        assert policy.choose(game_state, rules.AI) == Attack(rules.AI, 1, rules.PLAYER, 1)


class TestNormal:
    @pytest.mark.parametrize("roll, expected", [(0.1, M1), (0.75, M2), (0.95, M4)])
    def test_rolls_with_a_win_available(self, scripted_rng, roll, expected):
        policy = _policy(Strength.NORMAL, _table(**FULL), scripted_rng(roll))
        assert policy.choose(POSITION, rules.AI) == expected

    def test_draw_is_kept_without_win(self, scripted_rng):
        store = _table(m2=("DRAW", 0), m3=("WIN", 5), m4=("WIN", 11))
        assert _policy(Strength.NORMAL, store, scripted_rng(0.5)).choose(POSITION, rules.AI) == M2

    def test_slow_loss_over_draw_on_high_roll(self, scripted_rng):
        store = _table(m2=("DRAW", 0), m3=("WIN", 5), m4=("WIN", 11))
        assert _policy(Strength.NORMAL, store, scripted_rng(0.95)).choose(POSITION, rules.AI) == M4


class TestWeak:
    def test_plays_hard_on_low_roll(self, scripted_rng):
        assert _policy(Strength.WEAK, _table(**FULL), scripted_rng(0.3)).choose(POSITION, rules.AI) == M1

    def test_prefers_slow_loss_on_high_roll(self, scripted_rng):
        assert _policy(Strength.WEAK, _table(**FULL), scripted_rng(0.8)).choose(POSITION, rules.AI) == M4

    def test_falls_back_to_longest_loss(self, scripted_rng):
        store = _table(m0=("LOSS", 6), m3=("WIN", 3))
        assert _policy(Strength.WEAK, store, scripted_rng(0.8)).choose(POSITION, rules.AI) == M3


class TestWeakest:
    def test_hands_over_the_fastest_opponent_win(self, scripted_rng):
        assert _policy(Strength.WEAKEST, _table(**FULL), scripted_rng()).choose(POSITION, rules.AI) == M3

    def test_prefers_a_move_that_forces_an_opponent_win(self, scripted_rng):
        # ai (1, 1) vs player (1, 1): every attack gives "1,2|1,1|player",
        # the split gives "1,1|0,2|player". After the split, every player
        # reply leads to a table LOSS for the AI.
        store = TablebaseStore.from_entries(
            {
                "1,2|1,1|player": TablebaseEntry(Outcome.LOSS, 4),
                "1,1|0,2|player": TablebaseEntry(Outcome.WIN, 3),
                "1,1|0,3|ai": TablebaseEntry(Outcome.LOSS, 2),
                "0,2|0,2|ai": TablebaseEntry(Outcome.LOSS, 2),
            }
        )
        policy = _policy(Strength.WEAKEST, store, scripted_rng())
        assert policy.choose(state.initial_state(), rules.AI) == Split(rules.AI, 0, 2)

    def test_full_table_returns_a_legal_move(self, classifier, scripted_rng):
        game_state = state.State((0, 1), (1, 4))
        policy = StrengthPolicy(Strength.WEAKEST, classifier, rng=scripted_rng())
        assert policy.choose(game_state, rules.AI) in engine.generate_moves(game_state, rules.AI)

    def test_filter_immediate_kills(self, classifier):
        game_state = state.State((0, 1), (1, 4))
        evaluations = classifier.evaluate(game_state, rules.AI)
        safe = StrengthPolicy.filter_immediate_kills(evaluations, game_state, rules.AI)
        assert Attack(rules.AI, 1, rules.PLAYER, 1) not in [e.move for e in safe]
        assert len(safe) == len(evaluations) - 1

    def test_moves_allowing_immediate_opponent_win(self, classifier):
        # Hitting the player's 1 leaves their 4 free to finish the AI's lone 1;
        # killing the 4 leaves nothing that can.
        game_state = state.State((1, 4), (0, 1))
        evaluations = classifier.evaluate(game_state, rules.AI)
        allowing = StrengthPolicy.moves_allowing_immediate_opponent_win(evaluations, game_state, rules.AI)
        assert [e.move for e in allowing] == [Attack(rules.AI, 1, rules.PLAYER, 0)]


class TestEdgeCases:
    def test_no_legal_moves(self, classifier, scripted_rng):
        dead = state.State((1, 1), (0, 0))
        for strength in Strength:
            assert StrengthPolicy(strength, classifier, rng=scripted_rng()).choose(dead, rules.AI) is None

    def test_random_legal_move_when_nothing_is_classified(self, scripted_rng):
        policy = StrengthPolicy(Strength.HARD, MoveClassifier(TablebaseStore()), rng=scripted_rng())
        assert policy.choose(POSITION, rules.AI) == M0

    def test_search_fallback_classifies_without_table(self, scripted_rng):
        classifier = MoveClassifier(TablebaseStore(), SearchEngine(), search_depth=2)
        game_state = state.State((0, 1), (1, 4))
        evaluations = classifier.evaluate(game_state, rules.AI)
        assert evaluations and all(e.source == "search" for e in evaluations)
        policy = StrengthPolicy(Strength.HARD, classifier, rng=scripted_rng())
        assert policy.choose(game_state, rules.AI) == Attack(rules.AI, 1, rules.PLAYER, 1)


class TestStrengthParsing:
    def test_parse(self):
        assert Strength.parse("HARD") is Strength.HARD
        assert Strength.parse(" weak ") is Strength.WEAK
        assert Strength.parse(None) is Strength.HARD
        assert Strength.parse("", Strength.NORMAL) is Strength.NORMAL

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Strength.parse("impossible")


class TestPickHelpers:
    def test_helpers_on_buckets(self):
        classifier = MoveClassifier(_table(**FULL))
        buckets = OutcomeBuckets.group(classifier.evaluate(POSITION, rules.AI))
        assert pick_best_win(buckets.win).move == M1
        assert pick_longest_loss(buckets.loss).move == M4
        assert pick_loss_with_min_distance(buckets.loss, 12) is None
        assert pick_best_win([]) is None
