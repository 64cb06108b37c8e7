import logging

from fastapi import APIRouter, Depends, Request

from src.draw.service import WinnerSelectionService
from src.vrf.oracle import RandomnessOracleClient
from src.webapp.auth import Identity, get_identity
from src.webapp.database import AsyncSessionLocal
from src.webapp.errors import error_response
from src.webapp.schemas import DrawResponse

router = APIRouter(tags=["draw"])
logger = logging.getLogger("draw")

_service: WinnerSelectionService | None = None


def get_selection_service() -> WinnerSelectionService:
    global _service
    if _service is None:
        _service = WinnerSelectionService(AsyncSessionLocal, RandomnessOracleClient())
    return _service


@router.post("/select-winners-vrf")
async def select_winners_vrf(
        request: Request,
        identity: Identity = Depends(get_identity),
        service: WinnerSelectionService = Depends(get_selection_service),
):
    """
    Draws the winners of an ended giveaway owned by the caller.

    Body: {"giveaway_id": "..."}. Safe to repeat: a drawn giveaway answers with
    its stored winners.
    """
    try:
        body = await request.json()
    except ValueError as e:
        logger.warning("Failed to parse request body: %s", e)
        return error_response(400, "Invalid JSON in request body")

    giveaway_id = body.get("giveaway_id") if isinstance(body, dict) else None
    if not isinstance(giveaway_id, str) or not giveaway_id.strip():
        logger.warning("Missing giveaway_id in request body")
        return error_response(400, "Missing giveaway_id in request body.")

    outcome = await service.select_winners(giveaway_id.strip(), identity)
    return DrawResponse(
        giveaway_id=outcome.giveaway_id,
        winners=outcome.winners,
        vrf_request_tx_id=outcome.vrf_request_tx_id,
        vrf_response_tx_id=outcome.vrf_response_tx_id,
        already_drawn=outcome.already_drawn,
    ).model_dump(by_alias=True)


@router.api_route("/select-winners-vrf", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def select_winners_vrf_wrong_method():
    return error_response(405, "Method not allowed", headers={"Allow": "POST, OPTIONS"})
