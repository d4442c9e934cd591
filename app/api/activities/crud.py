from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.api.base_crud import CRUDBase
from app.core.logger import logger
from app.core.security import TokenData

from . import models, schemas


class CRUDActivity(
    CRUDBase[models.Activity, schemas.ActivityCreate, schemas.ActivityUpdate]
):
    def _check_permission(self, db_obj: models.Activity, user: TokenData) -> bool:
        # Activities are public to every authenticated participant
        return True

    def get_by_slug(self, db: Session, slug: str) -> Optional[models.Activity]:
        return db.query(self.model).filter(self.model.slug == slug).first()

    def update(
        self,
        db: Session,
        id: int,
        obj: schemas.ActivityUpdate,
        user: TokenData,
    ) -> models.Activity:
        activity = self.get(db, id, user)
        data = obj.model_dump(exclude_unset=True)
        open_time = data.get('attendance_open_time', activity.attendance_open_time)
        close_time = data.get('attendance_close_time', activity.attendance_close_time)
        enabled = data.get('attendance_enabled', activity.attendance_enabled)

        if enabled and (not open_time or not close_time):
            logger.error('Activity %s: attendance enabled without a window', id)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Attendance window requires open and close times',
            )
        if open_time and close_time and open_time > close_time:
            logger.error('Activity %s: open time after close time', id)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Attendance open time must be before close time',
            )

        return super().update(db, id, obj, user)


activity = CRUDActivity(models.Activity)
