from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from app.api.attendances.schemas import Attendance, check_coordinates
from app.api.participants.schemas import ParticipantProfile


class TokenIssueResponse(BaseModel):
    activity_id: int
    payload: str
    expires_at: datetime
    seconds_remaining: int


class ScanRequest(BaseModel):
    payload: str
    activity_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator('payload')
    def validate_payload(cls, v):
        if not v or not v.strip():
            raise ValueError('Payload is required')
        return v.strip()

    @model_validator(mode='after')
    def validate_location(self) -> 'ScanRequest':
        check_coordinates(self.latitude, self.longitude)
        return self


class CheckInResponse(BaseModel):
    success: bool
    first_check_in: bool
    record: Optional[Attendance] = None
    participant: Optional[ParticipantProfile] = None
    resume_after_seconds: Optional[int] = None


class SettlementMessage(BaseModel):
    key: str
    record: Optional[Attendance] = None
