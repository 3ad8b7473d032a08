"""Tests for the depth-limited negamax search."""

import pytest

from _01_simulator import engine, rules, state
from _01_simulator.actions import Attack, Split
from _01_simulator.exceptions import InvalidStateError
from _02_agents.solver.search import (
    WIN_VALUE,
    SearchConfig,
    SearchContext,
    SearchEngine,
    TTFlag,
    decode_value,
    evaluate_position,
    order_moves,
)
from _02_agents.tablebase.endgame import Outcome

WIN_IN_ONE = state.State((1, 4), (0, 1))


@pytest.fixture
def search_engine():
    return SearchEngine(SearchConfig(default_depth=6))


class TestSearch:
    def test_terminal_root(self, search_engine):
        result = search_engine.search(state.State((0, 0), (1, 1)), rules.PLAYER, 5)
        assert result.outcome is Outcome.LOSS
        assert result.distance == 0
        assert result.best_move is None

    def test_mate_in_one(self, search_engine):
        result = search_engine.search(WIN_IN_ONE, rules.PLAYER, 1)
        assert result.outcome is Outcome.WIN
        assert result.distance == 1
        assert result.best_move == Attack(rules.PLAYER, 1, rules.AI, 1)

    def test_deeper_search_keeps_shortest_win(self, search_engine):
        result = search_engine.search(WIN_IN_ONE, rules.PLAYER, 5)
        assert (result.outcome, result.distance) == (Outcome.WIN, 1)

    def test_zero_depth_is_a_draw_without_move(self, search_engine):
        result = search_engine.search(WIN_IN_ONE, rules.PLAYER, 0)
        assert result.outcome is Outcome.DRAW
        assert result.best_move is None

    def test_default_depth_from_config(self, search_engine):
        result = search_engine.search(WIN_IN_ONE, rules.PLAYER)
        assert result.outcome is Outcome.WIN

    def test_is_forced_win(self, search_engine):
        assert search_engine.is_forced_win(WIN_IN_ONE, rules.PLAYER, 1)
        assert not search_engine.is_forced_win(WIN_IN_ONE, rules.AI, 1)

    def test_cycles_terminate(self, search_engine):
        result = search_engine.search(state.initial_state(), rules.PLAYER, 8)
        assert result.best_move in engine.generate_moves(state.initial_state(), rules.PLAYER)
        assert result.nodes > 0

    def test_independent_calls(self, search_engine):
        first = search_engine.search(state.initial_state(), rules.AI, 5)
        second = search_engine.search(state.initial_state(), rules.AI, 5)
        assert first == second

    def test_to_dict(self, search_engine):
        data = search_engine.search(WIN_IN_ONE, rules.PLAYER, 1).to_dict()
        assert data["outcome"] == "WIN"
        assert data["distance"] == 1
        assert data["bestMove"] == {
            "type": "attack",
            "from": "player",
            "fromIndex": 1,
            "to": "ai",
            "toIndex": 1,
        }

    @pytest.mark.parametrize("game_state, turn", [("1,1|1,1|player", rules.PLAYER), (state.initial_state(), "x")])
    def test_malformed_input_raises(self, search_engine, game_state, turn):
        with pytest.raises(InvalidStateError):
            search_engine.search(game_state, turn, 3)


def test_agrees_with_tablebase_on_short_distances(entries):
    search_engine = SearchEngine()
    checked = 0
    for key, entry in sorted(entries.items()):
        if entry.outcome is Outcome.DRAW or not 0 < entry.distance <= 3:
            continue
        game_state, turn = state.parse_key(key)
        result = search_engine.search(game_state, turn, entry.distance)
        assert (result.outcome, result.distance) == (entry.outcome, entry.distance), key
        checked += 1
    assert checked > 0


def test_extra_depth_does_not_change_decided_results(entries):
    search_engine = SearchEngine()
    decided = [
        (key, entry)
        for key, entry in sorted(entries.items())
        if entry.outcome is not Outcome.DRAW and 0 < entry.distance <= 2
    ]
    for key, entry in decided[:10]:
        game_state, turn = state.parse_key(key)
        result = search_engine.search(game_state, turn, entry.distance + 2)
        assert (result.outcome, result.distance) == (entry.outcome, entry.distance), key


class TestMemo:
    def test_store_evicts_oldest_at_capacity(self):
        context = SearchContext(max_entries=3)
        for depth in range(5):
            context.store("1,1|1,1|player", depth, 0.0, TTFlag.EXACT)
        assert len(context.memo) == 3
        assert list(context.memo) == [("1,1|1,1|player", depth) for depth in (2, 3, 4)]

    def test_overwrite_does_not_evict(self):
        context = SearchContext(max_entries=2)
        context.store("a", 1, 0.0, TTFlag.EXACT)
        context.store("b", 1, 0.0, TTFlag.EXACT)
        context.store("a", 1, 5.0, TTFlag.LOWER)
        assert len(context.memo) == 2
        assert context.memo[("a", 1)].value == 5.0

    def test_lookup_respects_bounds(self):
        context = SearchContext()
        context.store("k", 2, 10.0, TTFlag.LOWER)
        assert context.probe("k", 2, 0.0, 5.0) == 10.0
        assert context.probe("k", 2, 0.0, 20.0) is None
        assert context.probe("k", 3, 0.0, 5.0) is None

    @pytest.mark.parametrize(
        "game_state, turn, depth",
        [(state.initial_state(), rules.PLAYER, 6), (WIN_IN_ONE, rules.PLAYER, 4), (state.State((1, 3), (1, 2)), rules.AI, 7)],
    )
    def test_tiny_memo_gives_the_same_result(self, game_state, turn, depth):
        bounded = SearchEngine(SearchConfig(memo_size=3)).search(game_state, turn, depth)
        default = SearchEngine().search(game_state, turn, depth)
        assert (bounded.outcome, bounded.distance) == (default.outcome, default.distance)


class TestHelpers:
    def test_decode_value(self):
        assert decode_value(WIN_VALUE - 3) == (Outcome.WIN, 3)
        assert decode_value(-WIN_VALUE + 2) == (Outcome.LOSS, 2)
        assert decode_value(0.5) == (Outcome.DRAW, 0)

    def test_evaluation_favours_the_side_with_more_hands(self):
        game_state = state.State((1, 1), (0, 4))
        assert evaluate_position(game_state, rules.PLAYER) > 0
        assert evaluate_position(game_state, rules.AI) < 0

    def test_killing_attacks_are_ordered_first(self):
        moves = engine.generate_moves(WIN_IN_ONE, rules.PLAYER)
        ordered = order_moves(WIN_IN_ONE, moves)
        assert ordered[0] == Attack(rules.PLAYER, 1, rules.AI, 1)
        assert isinstance(ordered[-1], Split)
