from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.webapp.models import Giveaway, GiveawayStatus, OPEN_STATUSES
from src.webapp.models.giveaway import utcnow
from src.webapp.schemas.giveaway import GiveawayCreate, GiveawayUpdate


async def get_giveaway(db: AsyncSession, giveaway_id: str) -> Optional[Giveaway]:
    result = await db.execute(select(Giveaway).where(Giveaway.id == giveaway_id))
    return result.scalar_one_or_none()


async def get_creator_giveaway(db: AsyncSession, giveaway_id: str, creator_id: str) -> Optional[Giveaway]:
    """Giveaway owned by `creator_id`; someone else's giveaway reads as missing."""
    result = await db.execute(
        select(Giveaway)
        .where(Giveaway.id == giveaway_id)
        .where(Giveaway.creator_id == creator_id)
    )
    return result.scalar_one_or_none()


async def get_creator_giveaways(db: AsyncSession, creator_id: str) -> Sequence[Giveaway]:
    result = await db.execute(
        select(Giveaway)
        .where(Giveaway.creator_id == creator_id)
        .order_by(Giveaway.created_at.desc())
    )
    return result.scalars().all()


async def get_open_giveaways(db: AsyncSession, now: Optional[datetime] = None) -> Sequence[Giveaway]:
    now = now or utcnow()
    result = await db.execute(
        select(Giveaway)
        .where(Giveaway.status.in_(OPEN_STATUSES))
        .where(Giveaway.end_time > now)
        .order_by(Giveaway.end_time.asc())
    )
    return result.scalars().all()


async def create_giveaway(db: AsyncSession, creator_id: str, data: GiveawayCreate) -> Giveaway:
    giveaway = Giveaway(**data.model_dump(), creator_id=creator_id, status=GiveawayStatus.draft)
    db.add(giveaway)
    await db.commit()
    await db.refresh(giveaway)
    return giveaway


async def update_giveaway(db: AsyncSession, giveaway_id: str, data: GiveawayUpdate) -> bool:
    """
    Applies the set fields while the giveaway is still a draft.
    Returns False when it left 'draft' before the write.
    """
    update_data = data.model_dump(exclude_unset=True)
    stmt = (
        update(Giveaway)
        .where(Giveaway.id == giveaway_id)
        .where(Giveaway.status == GiveawayStatus.draft)
        .execution_options(synchronize_session=False)
    )
    if update_data:
        stmt = stmt.values(**update_data)
    else:
        stmt = stmt.values(status=GiveawayStatus.draft)
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount == 1


async def set_giveaway_status(
        db: AsyncSession,
        giveaway_id: str,
        *,
        expected: GiveawayStatus,
        target: GiveawayStatus,
) -> bool:
    """
    Compare-and-set of the status column.
    Returns False when the row was no longer in `expected` at write time.
    """
    result = await db.execute(
        update(Giveaway)
        .where(Giveaway.id == giveaway_id)
        .where(Giveaway.status == expected)
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def commit_draw_result(
        db: AsyncSession,
        giveaway_id: str,
        *,
        winner_info: dict[str, Any],
        vrf_request_tx_id: str,
        vrf_response_tx_id: str,
) -> bool:
    """
    Writes the winner record and moves ended -> drawn in one statement.
    The status predicate makes it a no-op when another draw committed first.
    """
    result = await db.execute(
        update(Giveaway)
        .where(Giveaway.id == giveaway_id)
        .where(Giveaway.status == GiveawayStatus.ended)
        .values(
            status=GiveawayStatus.drawn,
            winner_info=winner_info,
            vrf_request_tx_id=vrf_request_tx_id,
            vrf_response_tx_id=vrf_response_tx_id,
            drawn_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        return False
    await db.commit()
    return True
