"""Core game simulation modules for Number-BATTLE."""

from . import actions, engine, exceptions, rules, simulate, state

__all__ = [
    "actions",
    "engine",
    "exceptions",
    "rules",
    "simulate",
    "state",
]
