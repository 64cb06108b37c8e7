from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.webapp.models.participant import Participant
from src.webapp.schemas.participant import ParticipantCreate


async def get_participants(db: AsyncSession, giveaway_id: str) -> Sequence[Participant]:
    """Join order, ties broken by identifier, so a draw can be re-run on the same list."""
    stmt = (
        select(Participant)
        .where(Participant.giveaway_id == giveaway_id)
        .order_by(Participant.created_at.asc(), Participant.participant_identifier.asc())
    )
    result = await db.execute(stmt)
    return result.scalars().all()


async def get_participant(db: AsyncSession, giveaway_id: str, participant_identifier: str) -> Optional[Participant]:
    stmt = (
        select(Participant)
        .where(Participant.giveaway_id == giveaway_id)
        .where(Participant.participant_identifier == participant_identifier)
    )
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def create_participant(db: AsyncSession, data: ParticipantCreate) -> tuple[Participant, bool]:
    """Idempotent create: if row exists, return it (created=False) instead of raising."""
    participant = Participant(**data.model_dump())
    db.add(participant)
    try:
        await db.commit()
        await db.refresh(participant)
        return participant, True
    except IntegrityError:
        # duplicate (giveaway_id, participant_identifier): rollback and fetch existing
        await db.rollback()
        existing = await get_participant(db, data.giveaway_id, data.participant_identifier)
        if existing is None:
            raise
        return existing, False
