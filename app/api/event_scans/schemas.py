from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class EventParticipantBase(BaseModel):
    qr_code: str
    member_name: str
    team_name: str
    category: str
    institution: str
    origin_region: Optional[str] = None
    advisor: Optional[str] = None
    photo_url: Optional[str] = None


class EventParticipantCreate(EventParticipantBase):
    @field_validator('qr_code', 'member_name', 'team_name', 'category', 'institution')
    @classmethod
    def validate_required_fields(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError('This field cannot be empty')
        return value.strip()


class EventParticipant(EventParticipantBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


class InternalEventScanCreate(BaseModel):
    qr_code: str
    member_name: str
    team_name: str
    category: str
    institution: Optional[str] = None
    scanned_at: datetime
    scanned_by: Optional[str] = None


class EventScan(BaseModel):
    id: int
    qr_code: str
    member_name: str
    team_name: str
    category: str
    institution: Optional[str] = None
    scanned_at: datetime
    scanned_by: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class EventScanRequest(BaseModel):
    payload: str


class EventScanResponse(BaseModel):
    success: bool
    participant: EventParticipant
    scan: EventScan
    resume_after_seconds: int
