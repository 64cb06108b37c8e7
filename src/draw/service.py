from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import COMMIT_RETRY_ATTEMPTS, COMMIT_RETRY_DELAY
from src.draw.commitment import build_winner_record, commit_winners
from src.draw.eligibility import check_eligibility, load_owned_giveaway
from src.draw.errors import AlreadyDrawn, StorageWriteFailed
from src.draw.selector import select_winners
from src.vrf.oracle import RandomnessOracleClient
from src.webapp.auth import Identity
from src.webapp.crud import get_giveaway
from src.webapp.models import Giveaway, GiveawayStatus


@dataclass(frozen=True)
class DrawOutcome:
    giveaway_id: str
    winners: List[str]
    vrf_request_tx_id: str
    vrf_response_tx_id: str
    already_drawn: bool = False

    @classmethod
    def from_giveaway(cls, giveaway: Giveaway) -> "DrawOutcome":
        info = giveaway.winner_info or {}
        return cls(
            giveaway_id=giveaway.id,
            winners=list(info.get("winners") or []),
            vrf_request_tx_id=giveaway.vrf_request_tx_id or info.get("vrf_request_tx_id") or "",
            vrf_response_tx_id=giveaway.vrf_response_tx_id or info.get("vrf_response_tx_id") or "",
            already_drawn=True,
        )


class WinnerSelectionService:
    """
    Runs a draw: eligibility -> oracle -> selector -> conditional commit.

    Calls for one giveaway are serialised inside the process; across processes the
    ended -> drawn predicate lets only one commit through. A giveaway that is already
    drawn answers with its stored winners instead of drawing again.
    """

    def __init__(
            self,
            session_factory: Callable[[], AsyncSession],
            oracle: RandomnessOracleClient,
            *,
            commit_attempts: int = COMMIT_RETRY_ATTEMPTS,
            commit_delay_s: float = COMMIT_RETRY_DELAY,
    ):
        self.session_factory = session_factory
        self.oracle = oracle
        self.commit_attempts = commit_attempts
        self.commit_delay_s = commit_delay_s
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._unsaved: Dict[str, Dict[str, Any]] = {}
        self.log = logging.getLogger(self.__class__.__name__)

    def _lock_for(self, giveaway_id: str) -> asyncio.Lock:
        lock = self._locks.get(giveaway_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[giveaway_id] = lock
        return lock

    async def select_winners(self, giveaway_id: str, identity: Identity) -> DrawOutcome:
        lock = self._lock_for(giveaway_id)
        async with lock:
            return await self._draw(giveaway_id, identity)

    async def _draw(self, giveaway_id: str, identity: Identity) -> DrawOutcome:
        self.log.info("Processing winner selection for giveaway %s", giveaway_id)

        async with self.session_factory() as db:
            giveaway = await load_owned_giveaway(db, giveaway_id, identity)
            if giveaway.status == GiveawayStatus.drawn:
                self._unsaved.pop(giveaway_id, None)
                self.log.info("Giveaway %s already drawn; returning stored winners", giveaway_id)
                return DrawOutcome.from_giveaway(giveaway)
            draw = await check_eligibility(db, giveaway)

        record = self._unsaved.get(giveaway_id)
        if record is not None and record["participants"] == draw.participants and record["num_winners"] == draw.num_winners:
            self.log.info("Giveaway %s: retrying the write of its unsaved draw", giveaway_id)
        else:
            self.log.info(
                "Giveaway %s: selecting %d winner(s) from %d participant(s)",
                giveaway_id, draw.num_winners, len(draw.participants),
            )
            result = await self.oracle.request_randomness(giveaway_id)
            winners = select_winners(result.output, draw.participants, draw.num_winners)
            record = build_winner_record(result, draw.participants, winners, draw.num_winners)

        try:
            await commit_winners(
                self.session_factory, giveaway_id, record,
                attempts=self.commit_attempts, delay_s=self.commit_delay_s,
            )
        except AlreadyDrawn:
            self._unsaved.pop(giveaway_id, None)
            stored = await self._stored_outcome(giveaway_id)
            if stored is None:
                raise
            self.log.info("Giveaway %s was drawn concurrently; returning stored winners", giveaway_id)
            return stored
        except StorageWriteFailed:
            # the next call writes this record again instead of asking the oracle
            self._unsaved[giveaway_id] = record
            self.log.error("Unsaved draw for giveaway %s: %s", giveaway_id, record)
            raise

        self._unsaved.pop(giveaway_id, None)
        return DrawOutcome(
            giveaway_id=giveaway_id,
            winners=list(record["winners"]),
            vrf_request_tx_id=record["vrf_request_tx_id"],
            vrf_response_tx_id=record["vrf_response_tx_id"],
        )

    async def _stored_outcome(self, giveaway_id: str) -> Optional[DrawOutcome]:
        async with self.session_factory() as db:
            giveaway = await get_giveaway(db, giveaway_id)
        if giveaway is None or giveaway.status != GiveawayStatus.drawn:
            return None
        return DrawOutcome.from_giveaway(giveaway)
