from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.base_crud import CRUDBase
from app.core.config import settings
from app.core.exceptions.check_in_exceptions import (
    DuplicateWithinCooldown,
    InvalidCode,
    TransientIOFailure,
)
from app.core.logger import log_scan, logger
from app.core.utils import current_time, seconds_between

from . import models, schemas


class CRUDEventScan(
    CRUDBase[
        models.EventParticipant,
        schemas.EventParticipantCreate,
        schemas.EventParticipantCreate,
    ]
):
    @property
    def cooldown(self) -> timedelta:
        return timedelta(minutes=settings.SCAN_COOLDOWN_MINUTES)

    def register(
        self, db: Session, obj: schemas.EventParticipantCreate
    ) -> models.EventParticipant:
        logger.info('Registering event participant %s', obj.qr_code)
        return self.create(db, obj)

    def get_registered(
        self, db: Session, code: str
    ) -> Optional[models.EventParticipant]:
        try:
            return (
                db.query(models.EventParticipant)
                .filter(models.EventParticipant.qr_code == code)
                .first()
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error('Error looking up code %s: %s', code, str(e))
            raise TransientIOFailure(str(e))

    def get_last_scan(self, db: Session, code: str) -> Optional[models.EventScan]:
        try:
            return (
                db.query(models.EventScan)
                .filter(models.EventScan.qr_code == code)
                .order_by(models.EventScan.scanned_at.desc())
                .first()
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error('Error reading last scan for %s: %s', code, str(e))
            raise TransientIOFailure(str(e))

    def get_scans(self, db: Session, code: str) -> List[models.EventScan]:
        return (
            db.query(models.EventScan)
            .filter(models.EventScan.qr_code == code)
            .order_by(models.EventScan.scanned_at)
            .all()
        )

    def _retry_after(self, last_scanned_at: Optional[datetime], now: datetime) -> int:
        if not last_scanned_at:
            return 1
        return max(seconds_between(now, last_scanned_at + self.cooldown), 1)

    def _claim(
        self,
        db: Session,
        code: str,
        now: datetime,
        last_scan: Optional[models.EventScan],
    ) -> bool:
        """Advance the cursor for code to now if the cooldown has elapsed.

        The check and the write are one conditional UPDATE, so two concurrent
        scans of the same code cannot both succeed.
        """
        threshold = now - self.cooldown
        updated = (
            db.query(models.EventScanCursor)
            .filter(
                models.EventScanCursor.qr_code == code,
                models.EventScanCursor.last_scanned_at <= threshold,
            )
            .update(
                {models.EventScanCursor.last_scanned_at: now},
                synchronize_session=False,
            )
        )
        if updated:
            return True

        cursor = db.get(models.EventScanCursor, code)
        if cursor:
            return False

        # First scan through the cursor; older log entries still count
        if last_scan and last_scan.scanned_at > threshold:
            return False

        try:
            db.add(models.EventScanCursor(qr_code=code, last_scanned_at=now))
            db.flush()
        except IntegrityError:
            db.rollback()
            logger.info('Concurrent first scan for %s', code)
            return False
        return True

    def validate_code(
        self,
        db: Session,
        payload: str,
        scanner_id: Optional[str] = None,
    ) -> schemas.EventScanResponse:
        log_scan(scanner_id, payload)
        code = (payload or '').strip()
        if not code:
            logger.error('Empty code from scanner %s', scanner_id)
            raise InvalidCode()

        participant = self.get_registered(db, code)
        if not participant:
            logger.error('Code %s is not registered', code)
            raise InvalidCode()

        last_scan = self.get_last_scan(db, code)
        now = current_time()
        try:
            claimed = self._claim(db, code, now, last_scan)
            if not claimed:
                db.rollback()
                cursor = db.get(models.EventScanCursor, code)
                last = cursor.last_scanned_at if cursor else None
                if last_scan and (not last or last_scan.scanned_at > last):
                    last = last_scan.scanned_at
                retry_after = self._retry_after(last, now)
                logger.error(
                    'Code %s scanned again within cooldown, retry in %s seconds',
                    code,
                    retry_after,
                )
                raise DuplicateWithinCooldown(
                    settings.SCAN_COOLDOWN_MINUTES, retry_after
                )

            scan = models.EventScan(
                **schemas.InternalEventScanCreate(
                    qr_code=code,
                    member_name=participant.member_name,
                    team_name=participant.team_name,
                    category=participant.category,
                    institution=participant.institution,
                    scanned_at=now,
                    scanned_by=scanner_id,
                ).model_dump()
            )
            db.add(scan)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error('Error committing scan for %s: %s', code, str(e))
            raise TransientIOFailure(str(e))

        db.refresh(scan)
        logger.info('Accepted scan %s for code %s at %s', scan.id, code, now)
        return schemas.EventScanResponse(
            success=True,
            participant=schemas.EventParticipant.model_validate(participant),
            scan=schemas.EventScan.model_validate(scan),
            resume_after_seconds=settings.SCAN_SUSPEND_SUCCESS_SECONDS,
        )


event_scan = CRUDEventScan(models.EventParticipant)
