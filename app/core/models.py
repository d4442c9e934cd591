# Import all models here to ensure SQLAlchemy can set up relationships correctly
from app.api.activities.models import Activity
from app.api.attendances.models import AttendanceRecord
from app.api.event_scans.models import EventParticipant, EventScan, EventScanCursor
from app.api.participants.models import Participant

# Re-export all models
__all__ = [
    'Activity',
    'AttendanceRecord',
    'EventParticipant',
    'EventScan',
    'EventScanCursor',
    'Participant',
]
