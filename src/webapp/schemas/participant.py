# src/webapp/schemas/participant.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class ParticipantCreate(BaseModel):
    giveaway_id: str
    participant_identifier: str


class ParticipantRead(ParticipantCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
