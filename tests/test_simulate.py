"""Tests for the game session wrapper."""

import pytest

from _01_simulator import rules, simulate, state
from _01_simulator.actions import Attack, Split
from _01_simulator.exceptions import GameAlreadyOverError, IllegalMoveError, InvalidSideError


def test_new_game_defaults():
    game = simulate.new_game()
    assert game.state == state.initial_state()
    assert game.current_side == rules.PLAYER
    assert game.starting_side == rules.PLAYER
    assert not game.game_over
    assert game.move_count == 0
    assert len(game.legal_moves()) == 5


def test_unknown_starting_side():
    with pytest.raises(InvalidSideError):
        simulate.GameSession(starting_side="referee")


def test_apply_attack_records_history_without_switching_turn():
    game = simulate.new_game()
    after = game.apply_attack(rules.PLAYER, 0, rules.AI, 0)
    assert after == state.State((1, 1), (2, 1))
    assert game.state == after
    assert game.current_side == rules.PLAYER
    assert game.move_count == 1

    record = game.history[0]
    assert record.index == 1
    assert record.before == state.initial_state()
    assert record.to_dict()["label"] == "player L -> ai L"


def test_turns_alternate_when_switched():
    game = simulate.new_game(rules.AI)
    game.apply_split(rules.AI, 0, 2)
    game.switch_turn_to(rules.PLAYER)
    game.apply_move(rules.PLAYER, Attack(rules.PLAYER, 1, rules.AI, 1))
    assert game.state == state.State((1, 1), (0, 3))
    assert [record.side for record in game.history] == [rules.AI, rules.PLAYER]


def test_wrong_turn_is_rejected():
    game = simulate.new_game()
    with pytest.raises(IllegalMoveError):
        game.apply_move(rules.AI, Split(rules.AI, 0, 2))
    assert game.move_count == 0


def test_illegal_move_leaves_state_unchanged():
    game = simulate.new_game()
    with pytest.raises(IllegalMoveError):
        game.apply_split(rules.PLAYER, 1, 1)
    assert game.state == state.initial_state()
    assert game.history == ()


def test_winning_move_ends_the_game():
    game = simulate.GameSession(initial=state.State((1, 4), (0, 1)))
    game.apply_attack(rules.PLAYER, 1, rules.AI, 1)
    win = game.check_win()
    assert win.game_over
    assert win.loser == rules.AI
    assert not win.player_lost
    assert game.game_over
    assert game.legal_moves() == []

    with pytest.raises(GameAlreadyOverError):
        game.apply_split(rules.PLAYER, 2, 3)


def test_check_win_while_playing():
    game = simulate.new_game()
    assert game.check_win() == simulate.WinCheck(game_over=False)


def test_session_starting_in_terminal_position():
    game = simulate.GameSession(initial=state.State((0, 0), (1, 1)))
    assert game.game_over


def test_to_dict():
    game = simulate.new_game(rules.AI)
    assert game.to_dict() == {
        "playerHands": [1, 1],
        "aiHands": [1, 1],
        "currentPlayer": "ai",
        "gameOver": False,
        "loser": None,
        "moveCount": 0,
    }
