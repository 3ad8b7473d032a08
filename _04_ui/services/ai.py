"""AI services shared by every session of the web service."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from _02_agents.cpu import CpuPlayer
from _02_agents.hints import HintAnalyzer
from _02_agents.offload import OffloadConfig, OffloadContext, SearchOffload
from _02_agents.outcomes import MoveClassifier
from _02_agents.solver.search import SearchEngine
from _02_agents.strength import Strength
from _02_agents.tablebase.storage import TablebaseSource, TablebaseStore
from _04_ui.core.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class AiServices:
    """Tablebase, search and hint machinery behind the API routes.

    ``offload`` is always present; without a background worker it computes
    every request in-process.
    """

    tablebase: TablebaseStore
    engine: SearchEngine
    classifier: MoveClassifier
    hints: HintAnalyzer
    offload: SearchOffload
    offload_config: OffloadConfig | None = None
    search_limiter: RateLimiter = field(default_factory=RateLimiter)
    rng: random.Random = field(default_factory=random.Random)

    @classmethod
    def create(
        cls,
        tablebase: TablebaseStore | None = None,
        tablebase_source: TablebaseSource | None = None,
        offload_config: OffloadConfig | None = None,
        rng: random.Random | None = None,
    ) -> AiServices:
        store = tablebase or TablebaseStore(default_source=tablebase_source)
        engine = SearchEngine()
        classifier = MoveClassifier(store, engine)
        hints = HintAnalyzer(classifier, engine)
        offload = SearchOffload(None, OffloadContext(store, engine))
        return cls(
            tablebase=store,
            engine=engine,
            classifier=classifier,
            hints=hints,
            offload=offload,
            offload_config=offload_config,
            rng=rng or random.Random(),
        )

    async def start(self) -> None:
        """Load the tablebase, then start the background worker if configured."""
        if not await self.tablebase.load():
            logger.warning("Starting without a tablebase; moves will be classified by search")
        if self.offload_config is not None:
            self.offload = SearchOffload.create(self.offload_config, self.tablebase)

    def close(self) -> None:
        self.offload.close()

    def cpu_for(self, strength: Strength, side: str) -> CpuPlayer:
        """CPU player at ``strength`` for ``side``, choosing moves through the offload channel."""
        offload = self.offload if self.offload.worker is not None else None
        return CpuPlayer(self.classifier, strength, side=side, rng=self.rng, offload=offload)
