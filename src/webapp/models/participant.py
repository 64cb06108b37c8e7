from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.webapp.database import Base
from src.webapp.models.giveaway import utcnow


class Participant(Base):
    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint("giveaway_id", "participant_identifier", name="uq_participants_giveaway_identifier"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    giveaway_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("giveaways.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    participant_identifier: Mapped[str] = mapped_column(String, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    giveaway = relationship("Giveaway", back_populates="participants")
