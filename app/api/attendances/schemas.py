from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from app.api.participants.schemas import ParticipantProfile


class AttendanceStatus(str, Enum):
    PRESENT = 'present'
    LATE = 'late'
    EXCUSED = 'excused'
    SICK = 'sick'
    ABSENT = 'absent'
    PENDING_APPROVAL = 'pending_approval'


class AttendanceMethod(str, Enum):
    QR_CODE = 'qr_code'
    MANUAL = 'manual'


def check_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
    if latitude is None and longitude is None:
        return
    if latitude is None or longitude is None:
        raise ValueError('Latitude and longitude must be sent together')
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise ValueError('Invalid coordinates')


class InternalAttendanceCreate(BaseModel):
    activity_id: int
    participant_id: int
    status: AttendanceStatus
    method: AttendanceMethod
    checked_in_at: datetime
    checked_in_by: Optional[str] = None
    requested_status: Optional[AttendanceStatus] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None
    points: int = 0

    model_config = ConfigDict(use_enum_values=True)


class ManualAttendanceCreate(BaseModel):
    activity_id: int
    participant_id: int
    status: AttendanceStatus
    checked_in_by: str
    notes: Optional[str] = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: AttendanceStatus) -> AttendanceStatus:
        if value == AttendanceStatus.PENDING_APPROVAL:
            raise ValueError('Manual entries cannot be pending approval')
        return value

    @field_validator('checked_in_by')
    @classmethod
    def validate_actor(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError('Actor is required for manual entries')
        return value.strip()


class ExcuseCreate(BaseModel):
    activity_id: int
    status: AttendanceStatus
    reason: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: AttendanceStatus) -> AttendanceStatus:
        if value not in (AttendanceStatus.EXCUSED, AttendanceStatus.SICK):
            raise ValueError('Only excused or sick can be requested')
        return value

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError('Reason is required')
        return value.strip()


class ExcuseReview(BaseModel):
    approve: bool
    reviewed_by: str
    notes: Optional[str] = None


class Attendance(BaseModel):
    id: int
    key: str
    activity_id: int
    participant_id: int
    status: AttendanceStatus
    requested_status: Optional[AttendanceStatus] = None
    method: AttendanceMethod
    checked_in_at: datetime
    checked_in_by: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None
    points: int

    model_config = ConfigDict(from_attributes=True)


class AttendanceFilter(BaseModel):
    activity_id: Optional[int] = None
    participant_id: Optional[int] = None
    status: Optional[AttendanceStatus] = None
    method: Optional[AttendanceMethod] = None

    model_config = ConfigDict(use_enum_values=True)


class AttendanceDisplay(BaseModel):
    status: str
    label: str
    color_class: str
    points: int
    derived: bool = False


class ActivityAttendance(BaseModel):
    activity_id: int
    title: str
    record: Optional[Attendance] = None
    display: AttendanceDisplay


class RosterEntry(BaseModel):
    participant: ParticipantProfile
    record: Optional[Attendance] = None
    display: AttendanceDisplay


class Roster(BaseModel):
    activity_id: int
    entries: List[RosterEntry]
    totals: dict
