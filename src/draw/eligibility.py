from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from src.draw.errors import NoParticipants, NotEligible, NotFound
from src.webapp.auth import Identity
from src.webapp.crud import get_creator_giveaway, get_participants
from src.webapp.models import Giveaway, GiveawayStatus

logger = logging.getLogger("draw.eligibility")


@dataclass(frozen=True)
class EligibleDraw:
    giveaway_id: str
    num_winners: int
    participants: List[str]


async def load_owned_giveaway(db: AsyncSession, giveaway_id: str, identity: Identity) -> Giveaway:
    giveaway = await get_creator_giveaway(db, giveaway_id, identity.user_id)
    if giveaway is None:
        raise NotFound(giveaway_id=giveaway_id)
    return giveaway


async def check_eligibility(db: AsyncSession, giveaway: Giveaway) -> EligibleDraw:
    """Read-only: the giveaway must be ended and have at least one participant."""
    if giveaway.status != GiveawayStatus.ended:
        logger.info("Giveaway %s not eligible, status=%s", giveaway.id, giveaway.status.value)
        raise NotEligible(
            f"Giveaway is not eligible for winner selection (status: {giveaway.status.value})",
            giveaway_id=giveaway.id,
        )

    participants = await get_participants(db, giveaway.id)
    if not participants:
        raise NoParticipants(giveaway_id=giveaway.id)

    return EligibleDraw(
        giveaway_id=giveaway.id,
        num_winners=giveaway.num_winners,
        participants=[p.participant_identifier for p in participants],
    )
