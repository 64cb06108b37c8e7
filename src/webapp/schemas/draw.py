from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: str


class DrawResponse(BaseModel):
    """Trigger endpoint payload; camelCase keys are part of the public contract."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    giveaway_id: str = Field(serialization_alias="giveawayId")
    winners: List[str]
    vrf_request_tx_id: str = Field(serialization_alias="vrfRequestTxId")
    vrf_response_tx_id: str = Field(serialization_alias="vrfResponseTxId")
    already_drawn: bool = Field(default=False, serialization_alias="alreadyDrawn")


class AuditRead(BaseModel):
    giveaway_id: str
    verified: bool
    detail: str
    winners: List[str] = []
    seed: Optional[str] = None
    vrf_output: Optional[str] = None
