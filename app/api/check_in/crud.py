from datetime import timedelta
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.activities.crud import activity as activity_crud
from app.api.activities.models import Activity
from app.api.activities.window import WindowPhase, get_activity_phase
from app.api.attendances.crud import attendance as attendance_crud
from app.api.attendances.models import attendance_key
from app.api.attendances.reconciliation import calculate_points
from app.api.attendances.schemas import (
    Attendance,
    AttendanceMethod,
    AttendanceStatus,
    InternalAttendanceCreate,
)
from app.api.participants.crud import participant as participant_crud
from app.api.participants.schemas import ParticipantProfile
from app.core.cache import CachedCredential, TokenCache
from app.core.config import settings
from app.core.exceptions.check_in_exceptions import (
    AlreadyCheckedIn,
    InvalidCode,
    TokenExpired,
    TransientIOFailure,
    WindowNotOpen,
)
from app.core.logger import log_scan, logger
from app.core.security import SYSTEM_TOKEN
from app.core.utils import current_time, seconds_between

from . import schemas
from .token import MalformedCredential, build_credential, decode_credential, verify_tag


def settlement_status(activity: Activity, now) -> AttendanceStatus:
    if activity.attendance_close_time and now > activity.attendance_close_time:
        return AttendanceStatus.LATE
    return AttendanceStatus.PRESENT


class CRUDCheckIn:
    def _token_response(
        self, activity_id: int, entry: CachedCredential, now
    ) -> schemas.TokenIssueResponse:
        return schemas.TokenIssueResponse(
            activity_id=activity_id,
            payload=entry.payload,
            expires_at=entry.expires_at,
            seconds_remaining=seconds_between(now, entry.expires_at),
        )

    def get_cached_token(
        self,
        cache: TokenCache,
        participant_id: int,
        activity_id: int,
    ) -> schemas.TokenIssueResponse:
        now = current_time()
        key = attendance_key(activity_id, participant_id)
        entry = cache.get(key, now)
        if not entry:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='No active QR code',
            )
        return self._token_response(activity_id, entry, now)

    def issue_token(
        self,
        db: Session,
        cache: TokenCache,
        participant_id: int,
        activity_id: int,
    ) -> schemas.TokenIssueResponse:
        activity = activity_crud.get(db, activity_id, SYSTEM_TOKEN)
        now = current_time()
        key = attendance_key(activity_id, participant_id)

        entry = cache.get(key, now)
        if entry:
            logger.info('Returning cached credential for %s', key)
            return self._token_response(activity_id, entry, now)

        if attendance_crud.get_by_key(db, activity_id, participant_id):
            logger.error('Credential requested for settled key %s', key)
            raise AlreadyCheckedIn()

        phase = get_activity_phase(activity, now)
        if phase != WindowPhase.OPEN:
            logger.error(
                'Credential requested for %s while window %s', key, phase.value
            )
            raise WindowNotOpen(phase.value)

        expires_at = now + timedelta(minutes=settings.TOKEN_TTL_MINUTES)
        entry = CachedCredential(
            key=key,
            payload=build_credential(participant_id, activity_id, expires_at),
            expires_at=expires_at,
        )
        cache.put(entry)
        logger.info('Issued credential for %s expiring at %s', key, expires_at)
        return self._token_response(activity_id, entry, now)

    def validate_token(
        self,
        db: Session,
        scan: schemas.ScanRequest,
        scanner_id: Optional[str] = None,
        staff_id: Optional[str] = None,
    ) -> schemas.CheckInResponse:
        log_scan(scanner_id, scan.payload)
        try:
            decoded = decode_credential(scan.payload)
        except MalformedCredential as e:
            logger.error('Malformed credential from scanner %s: %s', scanner_id, e)
            raise InvalidCode()

        if not verify_tag(decoded.subject, decoded.tag):
            logger.error('Credential tag mismatch for %s', decoded.subject)
            raise InvalidCode()

        now = current_time()
        if decoded.expires_at <= now:
            logger.error('Expired credential for %s', decoded.subject)
            raise TokenExpired()

        if scan.activity_id is not None and scan.activity_id != decoded.activity_id:
            logger.error(
                'Credential for activity %s scanned at activity %s',
                decoded.activity_id,
                scan.activity_id,
            )
            raise InvalidCode('QR code belongs to a different activity')

        try:
            activity = (
                db.query(Activity).filter(Activity.id == decoded.activity_id).first()
            )
            participant = participant_crud.resolve(db, decoded.participant_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error('Error resolving %s: %s', decoded.subject, str(e))
            raise TransientIOFailure(str(e))
        if not activity or not participant:
            logger.error('Unknown activity or participant in %s', decoded.subject)
            raise InvalidCode()

        attendance_status = settlement_status(activity, now)
        record, created = attendance_crud.commit(
            db,
            InternalAttendanceCreate(
                activity_id=activity.id,
                participant_id=participant.id,
                status=attendance_status,
                method=AttendanceMethod.QR_CODE,
                checked_in_at=now,
                checked_in_by=staff_id or scanner_id,
                latitude=scan.latitude,
                longitude=scan.longitude,
                points=calculate_points(attendance_status),
            ),
        )
        logger.info(
            'Check-in for %s: first=%s status=%s', record.key, created, record.status
        )
        return schemas.CheckInResponse(
            success=True,
            first_check_in=created,
            record=Attendance.model_validate(record),
            participant=ParticipantProfile.model_validate(participant),
            resume_after_seconds=settings.SCAN_SUSPEND_SUCCESS_SECONDS,
        )


check_in = CRUDCheckIn()
