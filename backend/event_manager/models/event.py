"""Event ORM model."""
import uuid
import enum
from sqlalchemy import Column, String, Text, Date, Time, DateTime, Integer, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from event_manager.database import Base


class EventCategory(str, enum.Enum):
    conference = "Conference"
    workshop = "Workshop"
    seminar = "Seminar"
    networking = "Networking"
    social = "Social"
    other = "Other"


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    date = Column(Date, nullable=False, index=True)
    time = Column(Time, nullable=False)
    location = Column(String(255), nullable=False)
    category = Column(
        SAEnum(EventCategory, values_callable=lambda e: [c.value for c in e], native_enum=False, length=20),
        nullable=False,
    )
    organizer_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    max_attendees = Column(Integer, nullable=True)
    image = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    organizer = relationship("User", lazy="joined")
    attendee_links = relationship(
        "EventAttendee",
        back_populates="event",
        order_by="EventAttendee.id",
        cascade="all, delete-orphan",
    )

    @property
    def attendees(self):
        return [link.user for link in self.attendee_links]

    @property
    def attendee_ids(self) -> list[str]:
        return [link.user_id for link in self.attendee_links]

    @property
    def attendee_count(self) -> int:
        return len(self.attendee_links)

    @property
    def is_at_capacity(self) -> bool:
        if not self.max_attendees:
            return False
        return self.attendee_count >= self.max_attendees

    def has_attendee(self, user_id: str) -> bool:
        return user_id in self.attendee_ids
