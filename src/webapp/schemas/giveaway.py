from datetime import datetime, timezone
from typing import Optional, List, Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.webapp.models import GiveawayStatus


def _required_text(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class GiveawayBase(BaseModel):
    title: str
    description: str
    prize_details: str

    start_time: datetime
    end_time: datetime
    num_winners: int = Field(default=1, ge=1)


class GiveawayCreate(GiveawayBase):
    @field_validator("title", "description", "prize_details")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _required_text(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _to_utc(value)

    @model_validator(mode="after")
    def _check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time.")
        return self


class GiveawayUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    prize_details: Optional[str] = None

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    num_winners: Optional[int] = Field(default=None, ge=1)

    @field_validator("title", "description", "prize_details")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _required_text(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_utc(value)

    @model_validator(mode="after")
    def _no_nulls(self):
        # omitted fields stay unchanged; every column is NOT NULL
        nulls = sorted(name for name in self.model_fields_set if getattr(self, name) is None)
        if nulls:
            raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return self


class GiveawayStatusChange(BaseModel):
    status: GiveawayStatus


class WinnerInfo(BaseModel):
    """Stored draw record; carries everything needed to re-run the draw."""
    winners: List[str]
    selection_method: str
    selected_at: datetime
    seed: str
    vrf_output: str
    vrf_proof: str
    vrf_request_tx_id: str
    vrf_response_tx_id: str
    num_winners: int
    participants: List[str]


class GiveawayRead(GiveawayBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    creator_id: str
    status: GiveawayStatus
    created_at: datetime

    winner_info: Optional[Dict[str, Any]] = None
    vrf_request_tx_id: Optional[str] = None
    vrf_response_tx_id: Optional[str] = None
    drawn_at: Optional[datetime] = None


class GiveawayListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    creator_id: str
    title: str
    prize_details: str
    end_time: datetime
    status: GiveawayStatus
