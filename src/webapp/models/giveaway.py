import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import DateTime, Enum as SAEnum, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.webapp.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """sqlite hands back naive datetimes; everything we store is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class GiveawayStatus(str, Enum):
    draft = "draft"
    published = "published"
    active = "active"
    ended = "ended"
    drawn = "drawn"


# ended -> drawn belongs to winner selection only
CREATOR_TRANSITIONS: dict[GiveawayStatus, frozenset[GiveawayStatus]] = {
    GiveawayStatus.draft: frozenset({GiveawayStatus.published, GiveawayStatus.ended}),
    GiveawayStatus.published: frozenset({GiveawayStatus.active, GiveawayStatus.ended}),
    GiveawayStatus.active: frozenset({GiveawayStatus.ended}),
    GiveawayStatus.ended: frozenset(),
    GiveawayStatus.drawn: frozenset(),
}

OPEN_STATUSES = (GiveawayStatus.published, GiveawayStatus.active)


def can_transition(current: GiveawayStatus, target: GiveawayStatus) -> bool:
    return target in CREATOR_TRANSITIONS.get(current, frozenset())


class Giveaway(Base):
    __tablename__ = "giveaways"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    creator_id: Mapped[str] = mapped_column(String, index=True, nullable=False)

    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    prize_details: Mapped[str] = mapped_column(Text, nullable=False)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    num_winners: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    status: Mapped[GiveawayStatus] = mapped_column(
        SAEnum(GiveawayStatus, name="giveaway_status"),
        nullable=False,
        default=GiveawayStatus.draft,
        index=True,
    )

    winner_info: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True, default=None)
    vrf_request_tx_id: Mapped[Optional[str]] = mapped_column(String, nullable=True, default=None)
    vrf_response_tx_id: Mapped[Optional[str]] = mapped_column(String, nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    drawn_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    participants = relationship(
        "Participant",
        back_populates="giveaway",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES and as_utc(self.end_time) > utcnow()
