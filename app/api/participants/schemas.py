from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class ParticipantBase(BaseModel):
    full_name: str
    email: str
    student_number: Optional[str] = None
    study_program: Optional[str] = None


class ParticipantCreate(ParticipantBase):
    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError('This field cannot be empty')
        return value.strip()

    @field_validator('email')
    @classmethod
    def clean_email(cls, value: str) -> str:
        if not value:
            raise ValueError('This field cannot be empty')
        return value.lower().strip()


class Participant(ParticipantBase):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ParticipantProfile(BaseModel):
    """Snapshot shown to the scanner operator after a successful check-in."""

    id: int
    full_name: str
    student_number: Optional[str] = None
    study_program: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
