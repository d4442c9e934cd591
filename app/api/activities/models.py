from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.core.database import Base
from app.core.utils import current_time


class Activity(Base):
    __tablename__ = 'activities'

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        unique=True,
        index=True,
    )
    title = Column(String, nullable=False)
    slug = Column(String, index=True, nullable=False, unique=True)
    description = Column(String)
    location = Column(String)
    start_datetime = Column(DateTime)
    end_datetime = Column(DateTime)

    attendance_enabled = Column(Boolean, nullable=False, default=False)
    attendance_open_time = Column(DateTime)
    attendance_close_time = Column(DateTime)
    late_tolerance = Column(Integer, nullable=False, default=15)  # in minutes

    created_at = Column(DateTime, default=current_time)
    updated_at = Column(DateTime, default=current_time, onupdate=current_time)
    created_by = Column(String)
    updated_by = Column(String)

    @property
    def ends_at(self):
        return self.end_datetime or self.attendance_close_time
