from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.activities.crud import activity as activity_crud
from app.api.activities.models import Activity
from app.api.attendances import models, schemas
from app.api.attendances.models import attendance_key
from app.api.attendances.reconciliation import calculate_points, reconcile
from app.api.base_crud import CRUDBase
from app.api.participants.crud import participant as participant_crud
from app.api.participants.schemas import ParticipantProfile
from app.core.broker import get_settlement_broker
from app.core.exceptions.check_in_exceptions import (
    AlreadyCheckedIn,
    TransientIOFailure,
)
from app.core.logger import logger
from app.core.security import SYSTEM_TOKEN, TokenData
from app.core.utils import current_time


def _as_schema(
    record: Optional[models.AttendanceRecord],
) -> Optional[schemas.Attendance]:
    return schemas.Attendance.model_validate(record) if record else None


class CRUDAttendance(
    CRUDBase[
        models.AttendanceRecord,
        schemas.InternalAttendanceCreate,
        schemas.InternalAttendanceCreate,
    ]
):
    def _check_permission(
        self, db_obj: models.AttendanceRecord, user: TokenData
    ) -> bool:
        return db_obj.participant_id == user.participant_id or user == SYSTEM_TOKEN

    def get_by_key(
        self,
        db: Session,
        activity_id: int,
        participant_id: int,
    ) -> Optional[models.AttendanceRecord]:
        key = attendance_key(activity_id, participant_id)
        try:
            return db.query(self.model).filter(self.model.key == key).first()
        except SQLAlchemyError as e:
            logger.error('Error reading attendance %s: %s', key, str(e))
            db.rollback()
            raise TransientIOFailure(str(e))

    def commit(
        self,
        db: Session,
        obj: schemas.InternalAttendanceCreate,
    ) -> Tuple[models.AttendanceRecord, bool]:
        """Insert the settlement for (activity, participant) if none exists.

        Returns the stored record and whether this call created it. An existing
        record is never overwritten.
        """
        key = attendance_key(obj.activity_id, obj.participant_id)
        existing = self.get_by_key(db, obj.activity_id, obj.participant_id)
        if existing:
            logger.info('Attendance %s already settled', key)
            return existing, False

        db_obj = self.model(key=key, **obj.model_dump())
        try:
            db.add(db_obj)
            db.commit()
        except IntegrityError as e:
            # Lost the race against a concurrent commit for the same key
            db.rollback()
            logger.info('Concurrent settlement for %s: %s', key, str(e.orig))
            existing = self.get_by_key(db, obj.activity_id, obj.participant_id)
            if existing:
                return existing, False
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Attendance could not be recorded',
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error('Error committing attendance %s: %s', key, str(e))
            raise TransientIOFailure(str(e))

        db.refresh(db_obj)
        logger.info('Attendance %s settled as %s', key, db_obj.status)
        self._publish(db_obj)
        return db_obj, True

    def _publish(self, db_obj: models.AttendanceRecord) -> None:
        record = _as_schema(db_obj).model_dump(mode='json')
        get_settlement_broker().publish(db_obj.key, record)

    def _ensure_refs(self, db: Session, activity_id: int, participant_id: int):
        activity = activity_crud.get(db, activity_id, SYSTEM_TOKEN)
        participant = participant_crud.get(db, participant_id, SYSTEM_TOKEN)
        return activity, participant

    def create_manual(
        self,
        db: Session,
        obj: schemas.ManualAttendanceCreate,
    ) -> models.AttendanceRecord:
        self._ensure_refs(db, obj.activity_id, obj.participant_id)
        logger.info(
            'Manual attendance for activity %s participant %s by %s',
            obj.activity_id,
            obj.participant_id,
            obj.checked_in_by,
        )
        record, created = self.commit(
            db,
            schemas.InternalAttendanceCreate(
                activity_id=obj.activity_id,
                participant_id=obj.participant_id,
                status=obj.status,
                method=schemas.AttendanceMethod.MANUAL,
                checked_in_at=current_time(),
                checked_in_by=obj.checked_in_by,
                notes=obj.notes,
                points=calculate_points(obj.status),
            ),
        )
        if not created:
            raise AlreadyCheckedIn()
        return record

    def submit_excuse(
        self,
        db: Session,
        obj: schemas.ExcuseCreate,
        user: TokenData,
    ) -> models.AttendanceRecord:
        activity, _ = self._ensure_refs(db, obj.activity_id, user.participant_id)
        now = current_time()
        if not activity.attendance_enabled:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Attendance is not enabled for this activity',
            )
        if activity.ends_at and now > activity.ends_at:
            logger.error(
                'Excuse for activity %s submitted after it ended. %s',
                activity.id,
                user.email,
            )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Activity has already ended',
            )

        record, created = self.commit(
            db,
            schemas.InternalAttendanceCreate(
                activity_id=obj.activity_id,
                participant_id=user.participant_id,
                status=schemas.AttendanceStatus.PENDING_APPROVAL,
                requested_status=obj.status,
                method=schemas.AttendanceMethod.MANUAL,
                checked_in_at=now,
                notes=obj.reason,
                points=calculate_points(schemas.AttendanceStatus.PENDING_APPROVAL),
            ),
        )
        if not created:
            raise AlreadyCheckedIn()
        return record

    def review_excuse(
        self,
        db: Session,
        id: int,
        review: schemas.ExcuseReview,
    ) -> models.AttendanceRecord:
        record = self.get(db, id, SYSTEM_TOKEN)
        if record.status != schemas.AttendanceStatus.PENDING_APPROVAL.value:
            logger.error('Attendance %s is not pending approval', record.key)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Attendance is not pending approval',
            )

        new_status = (
            record.requested_status
            if review.approve
            else schemas.AttendanceStatus.ABSENT.value
        )
        logger.info(
            'Excuse %s %s by %s',
            record.key,
            'approved' if review.approve else 'rejected',
            review.reviewed_by,
        )
        record.status = new_status
        record.points = calculate_points(new_status)
        record.checked_in_by = review.reviewed_by
        if review.notes:
            record.notes = (
                f'{record.notes}\n{review.notes}' if record.notes else review.notes
            )

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error('Error reviewing attendance %s: %s', record.key, str(e))
            raise TransientIOFailure(str(e))
        db.refresh(record)
        return record

    def summary_for_participant(
        self,
        db: Session,
        user: TokenData,
    ) -> List[schemas.ActivityAttendance]:
        now = current_time()
        activities = db.query(Activity).order_by(Activity.start_datetime).all()
        records: Dict[int, models.AttendanceRecord] = {
            r.activity_id: r
            for r in db.query(self.model)
            .filter(self.model.participant_id == user.participant_id)
            .all()
        }

        response = []
        for activity in activities:
            record = records.get(activity.id)
            response.append(
                schemas.ActivityAttendance(
                    activity_id=activity.id,
                    title=activity.title,
                    record=_as_schema(record),
                    display=reconcile(activity, record, now),
                )
            )
        return response

    def roster(self, db: Session, activity_id: int) -> schemas.Roster:
        now = current_time()
        activity = activity_crud.get(db, activity_id, SYSTEM_TOKEN)
        records: Dict[int, models.AttendanceRecord] = {
            r.participant_id: r
            for r in db.query(self.model)
            .filter(self.model.activity_id == activity_id)
            .all()
        }

        entries = []
        totals: Dict[str, int] = {}
        for participant in participant_crud.get_active(db):
            record = records.get(participant.id)
            display = reconcile(activity, record, now)
            totals[display.status] = totals.get(display.status, 0) + 1
            entries.append(
                schemas.RosterEntry(
                    participant=ParticipantProfile.model_validate(participant),
                    record=_as_schema(record),
                    display=display,
                )
            )

        return schemas.Roster(activity_id=activity.id, entries=entries, totals=totals)


attendance = CRUDAttendance(models.AttendanceRecord)
