import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import JSONResponse

from src.draw.audit import AuditMismatch, verify_winner_record
from src.draw.service import WinnerSelectionService
from src.webapp.auth import Identity, get_identity
from src.webapp.crud import (
    get_giveaway, get_creator_giveaway, get_creator_giveaways, get_open_giveaways,
    create_giveaway, update_giveaway, set_giveaway_status, get_participants, create_participant,
)
from src.webapp.database import get_db
from src.webapp.models import GiveawayStatus, can_transition
from src.webapp.models.giveaway import as_utc
from src.webapp.routes.draw import get_selection_service
from src.webapp.schemas import (
    GiveawayCreate, GiveawayUpdate, GiveawayRead, GiveawayListItem, GiveawayStatusChange,
    ParticipantCreate, ParticipantRead, AuditRead,
)

router = APIRouter(prefix="/giveaways", tags=["giveaways"])
logger = logging.getLogger("giveaways")


async def _owned_or_404(db: AsyncSession, giveaway_id: str, identity: Identity):
    giveaway = await get_creator_giveaway(db, giveaway_id, identity.user_id)
    if not giveaway: raise HTTPException(status_code=404, detail="Giveaway not found or you do not have permission to manage it")
    return giveaway


@router.get("", response_model=List[GiveawayListItem])
async def list_open_giveaways(db: AsyncSession = Depends(get_db)):
    return await get_open_giveaways(db)


@router.post("", response_model=GiveawayRead, status_code=201)
async def create(data: GiveawayCreate, identity: Identity = Depends(get_identity), db: AsyncSession = Depends(get_db)):
    giveaway = await create_giveaway(db, identity.user_id, data)
    logger.info("Giveaway %s created by %s", giveaway.id, identity.user_id)
    return giveaway


@router.get("/mine", response_model=List[GiveawayRead])
async def list_my_giveaways(identity: Identity = Depends(get_identity), db: AsyncSession = Depends(get_db)):
    return await get_creator_giveaways(db, identity.user_id)


@router.get("/{giveaway_id}", response_model=GiveawayRead)
async def read(giveaway_id: str, db: AsyncSession = Depends(get_db)):
    giveaway = await get_giveaway(db, giveaway_id)
    if not giveaway: raise HTTPException(status_code=404, detail="Giveaway not found")
    return giveaway


@router.patch("/{giveaway_id}", response_model=GiveawayRead)
async def edit(giveaway_id: str, data: GiveawayUpdate, identity: Identity = Depends(get_identity), db: AsyncSession = Depends(get_db)):
    giveaway = await _owned_or_404(db, giveaway_id, identity)
    if giveaway.status != GiveawayStatus.draft: raise HTTPException(status_code=400, detail="Only draft giveaways can be edited")

    start = data.start_time or as_utc(giveaway.start_time)
    end = data.end_time or as_utc(giveaway.end_time)
    if as_utc(end) <= as_utc(start): raise HTTPException(status_code=400, detail="End time must be after start time.")

    if not await update_giveaway(db, giveaway_id, data):
        raise HTTPException(status_code=409, detail="Giveaway left draft concurrently, reload and retry")

    await db.refresh(giveaway)
    return giveaway


@router.post("/{giveaway_id}/status", response_model=GiveawayRead)
async def change_status(giveaway_id: str, data: GiveawayStatusChange, identity: Identity = Depends(get_identity), db: AsyncSession = Depends(get_db)):
    giveaway = await _owned_or_404(db, giveaway_id, identity)
    current = giveaway.status
    if not can_transition(current, data.status):
        raise HTTPException(status_code=400, detail=f"Cannot change status from {current.value} to {data.status.value}")

    if not await set_giveaway_status(db, giveaway_id, expected=current, target=data.status):
        raise HTTPException(status_code=409, detail="Giveaway status changed concurrently, reload and retry")

    logger.info("Giveaway %s: %s -> %s", giveaway_id, current.value, data.status.value)
    await db.refresh(giveaway)
    return giveaway


@router.post("/{giveaway_id}/join", response_model=ParticipantRead)
async def join(giveaway_id: str, identity: Identity = Depends(get_identity), db: AsyncSession = Depends(get_db)):
    giveaway = await get_giveaway(db, giveaway_id)
    if not giveaway: raise HTTPException(status_code=404, detail="Giveaway not found")
    if giveaway.creator_id == identity.user_id: raise HTTPException(status_code=400, detail="Creators cannot join their own giveaway")
    if not giveaway.is_open: raise HTTPException(status_code=400, detail="Giveaway is not open for participation")

    participant, created = await create_participant(
        db, ParticipantCreate(giveaway_id=giveaway_id, participant_identifier=identity.user_id)
    )
    if created: logger.info("%s joined giveaway %s", identity.user_id, giveaway_id)
    body = ParticipantRead.model_validate(participant).model_dump(mode="json")
    return JSONResponse(body, status_code=201 if created else 200)


@router.get("/{giveaway_id}/participants", response_model=List[ParticipantRead])
async def list_participants(giveaway_id: str, identity: Identity = Depends(get_identity), db: AsyncSession = Depends(get_db)):
    await _owned_or_404(db, giveaway_id, identity)
    return await get_participants(db, giveaway_id)


@router.get("/{giveaway_id}/audit", response_model=AuditRead)
async def audit(giveaway_id: str, db: AsyncSession = Depends(get_db), service: WinnerSelectionService = Depends(get_selection_service)):
    giveaway = await get_giveaway(db, giveaway_id)
    if not giveaway: raise HTTPException(status_code=404, detail="Giveaway not found")
    if giveaway.status != GiveawayStatus.drawn or not giveaway.winner_info:
        raise HTTPException(status_code=400, detail="Giveaway has not been drawn yet")

    try:
        result = verify_winner_record(giveaway.id, giveaway.winner_info, service.oracle.public_key)
    except AuditMismatch as e:
        logger.error("Audit failed for giveaway %s: %s", giveaway_id, e)
        return AuditRead(giveaway_id=giveaway_id, verified=False, detail=str(e))

    return AuditRead(
        giveaway_id=giveaway_id,
        verified=True,
        detail="Proof verified and winners reproduced",
        winners=result["winners"],
        seed=result["seed"],
        vrf_output=result["vrf_output"],
    )
