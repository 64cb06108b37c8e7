from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import COMMIT_RETRY_ATTEMPTS, COMMIT_RETRY_DELAY
from src.draw.errors import AlreadyDrawn, StorageWriteFailed
from src.vrf.oracle import OracleResult
from src.webapp.crud import commit_draw_result
from src.webapp.schemas import WinnerInfo

logger = logging.getLogger("draw.commitment")

SELECTION_METHOD = "rsa_fdh_vrf"


def build_winner_record(
        result: OracleResult,
        participants: List[str],
        winners: List[str],
        num_winners: int,
) -> Dict[str, Any]:
    # participants are stored in draw order so the selection can be re-run
    return WinnerInfo(
        winners=list(winners),
        selection_method=SELECTION_METHOD,
        selected_at=datetime.now(timezone.utc),
        seed=result.seed.hex(),
        vrf_output=result.output.hex(),
        vrf_proof=result.proof.hex(),
        vrf_request_tx_id=result.request_tx_id,
        vrf_response_tx_id=result.response_tx_id,
        num_winners=num_winners,
        participants=list(participants),
    ).model_dump(mode="json")


async def commit_winners(
        session_factory: Callable[[], AsyncSession],
        giveaway_id: str,
        record: Dict[str, Any],
        *,
        attempts: int = COMMIT_RETRY_ATTEMPTS,
        delay_s: float = COMMIT_RETRY_DELAY,
) -> None:
    """
    Persist `record` and move the giveaway ended -> drawn.

    Storage errors are retried with the very same record; the oracle is never
    consulted again here. Raises AlreadyDrawn if the giveaway left 'ended' first.
    """
    attempts = max(1, attempts)
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            async with session_factory() as db:
                committed = await commit_draw_result(
                    db,
                    giveaway_id,
                    winner_info=record,
                    vrf_request_tx_id=record["vrf_request_tx_id"],
                    vrf_response_tx_id=record["vrf_response_tx_id"],
                )
        except SQLAlchemyError as e:
            last_error = e
            logger.warning("Commit attempt %d/%d for giveaway %s failed: %s", attempt, attempts, giveaway_id, e)
            if attempt < attempts:
                await asyncio.sleep(delay_s * attempt)
            continue

        if not committed:
            raise AlreadyDrawn(giveaway_id=giveaway_id)
        logger.info("Committed %d winner(s) for giveaway %s", len(record["winners"]), giveaway_id)
        return

    logger.error("Giving up on giveaway %s after %d commit attempts", giveaway_id, attempts)
    raise StorageWriteFailed(giveaway_id=giveaway_id) from last_error
