"""Agent implementations: tablebase, search, strength policies and the CPU player."""

from .base import Agent, AgentFn, ensure_legal
from .cpu import CpuPlayer, resolve_strength
from .hints import HINT_SEARCH_DEPTH, HintAnalyzer
from .offload import (
    OffloadAction,
    OffloadConfig,
    OffloadContext,
    ProcessWorker,
    SearchOffload,
    ThreadWorker,
    handle_request,
)
from .outcomes import MoveClassifier, MoveEvaluation, OutcomeBuckets, Perspective
from .solver import SearchConfig, SearchEngine, SearchResult
from .strength import Strength, StrengthConfig, StrengthPolicy
from .tablebase import Outcome, RetrogradeTablebase, TablebaseEntry, TablebaseStore

__all__ = [
    "Agent",
    "AgentFn",
    "ensure_legal",
    "CpuPlayer",
    "resolve_strength",
    "HINT_SEARCH_DEPTH",
    "HintAnalyzer",
    "OffloadAction",
    "OffloadConfig",
    "OffloadContext",
    "ProcessWorker",
    "SearchOffload",
    "ThreadWorker",
    "handle_request",
    "MoveClassifier",
    "MoveEvaluation",
    "OutcomeBuckets",
    "Perspective",
    "SearchConfig",
    "SearchEngine",
    "SearchResult",
    "Strength",
    "StrengthConfig",
    "StrengthPolicy",
    "Outcome",
    "RetrogradeTablebase",
    "TablebaseEntry",
    "TablebaseStore",
]
