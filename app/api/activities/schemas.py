from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class ActivityBase(BaseModel):
    title: str
    slug: str
    description: Optional[str] = None
    location: Optional[str] = None
    start_datetime: Optional[datetime] = None
    end_datetime: Optional[datetime] = None
    attendance_enabled: bool = False
    attendance_open_time: Optional[datetime] = None
    attendance_close_time: Optional[datetime] = None
    late_tolerance: int = 15


class ActivityCreate(ActivityBase):
    @field_validator('title', 'slug')
    @classmethod
    def validate_required_fields(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError('This field cannot be empty')
        return value.strip()

    @field_validator('late_tolerance')
    @classmethod
    def validate_late_tolerance(cls, value: int) -> int:
        if value < 0:
            raise ValueError('Late tolerance cannot be negative')
        return value

    @model_validator(mode='after')
    def validate_window(self) -> 'ActivityCreate':
        if self.attendance_enabled and (
            not self.attendance_open_time or not self.attendance_close_time
        ):
            raise ValueError('Attendance window requires open and close times')
        if (
            self.attendance_open_time
            and self.attendance_close_time
            and self.attendance_open_time > self.attendance_close_time
        ):
            raise ValueError('Attendance open time must be before close time')
        return self


class ActivityUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_datetime: Optional[datetime] = None
    end_datetime: Optional[datetime] = None
    attendance_enabled: Optional[bool] = None
    attendance_open_time: Optional[datetime] = None
    attendance_close_time: Optional[datetime] = None
    late_tolerance: Optional[int] = None


class Activity(ActivityBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ActivityFilter(BaseModel):
    id: Optional[int] = None
    slug: Optional[str] = None
    attendance_enabled: Optional[bool] = None

