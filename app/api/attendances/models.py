from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.utils import current_time


def attendance_key(activity_id: int, participant_id: int) -> str:
    return f'{activity_id}_{participant_id}'


class AttendanceRecord(Base):
    __tablename__ = 'attendances'

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        unique=True,
        index=True,
    )
    # One settlement per activity and participant
    key = Column(String, nullable=False, unique=True, index=True)
    activity_id = Column(
        Integer, ForeignKey('activities.id'), index=True, nullable=False
    )
    participant_id = Column(
        Integer, ForeignKey('participants.id'), index=True, nullable=False
    )
    status = Column(String, nullable=False)
    requested_status = Column(String)
    method = Column(String, nullable=False)
    checked_in_at = Column(DateTime, nullable=False, default=current_time)
    checked_in_by = Column(String)
    latitude = Column(Float)
    longitude = Column(Float)
    notes = Column(String)
    points = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=current_time)
    updated_at = Column(DateTime, default=current_time, onupdate=current_time)

    activity = relationship('Activity', lazy='joined')
    participant = relationship('Participant', lazy='joined')
