from sqlalchemy import Column, DateTime, Integer, String

from app.core.database import Base
from app.core.utils import current_time


class EventParticipant(Base):
    __tablename__ = 'event_participants'

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        unique=True,
        index=True,
    )
    qr_code = Column(String, index=True, nullable=False, unique=True)
    member_name = Column(String, nullable=False)
    team_name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    institution = Column(String, nullable=False)
    origin_region = Column(String)
    advisor = Column(String)
    photo_url = Column(String)

    created_at = Column(DateTime, default=current_time)
    updated_at = Column(DateTime, default=current_time, onupdate=current_time)


class EventScan(Base):
    __tablename__ = 'event_scans'

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        unique=True,
        index=True,
    )
    qr_code = Column(String, index=True, nullable=False)
    # Snapshot of the registry at commit time
    member_name = Column(String, nullable=False)
    team_name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    institution = Column(String)
    scanned_at = Column(DateTime, index=True, nullable=False, default=current_time)
    scanned_by = Column(String)


class EventScanCursor(Base):
    """Commit time of the latest accepted scan per code."""

    __tablename__ = 'event_scan_cursors'

    qr_code = Column(String, primary_key=True)
    last_scanned_at = Column(DateTime, nullable=False)
