from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.base_crud import CRUDBase
from app.core.exceptions.check_in_exceptions import TransientIOFailure
from app.core.logger import logger
from app.core.security import SYSTEM_TOKEN, TokenData

from . import models, schemas


class CRUDParticipant(
    CRUDBase[models.Participant, schemas.ParticipantCreate, schemas.ParticipantCreate]
):
    def _check_permission(self, db_obj: models.Participant, user: TokenData) -> bool:
        return db_obj.id == user.participant_id or user == SYSTEM_TOKEN

    def get_by_email(self, db: Session, email: str) -> Optional[models.Participant]:
        return db.query(self.model).filter(self.model.email == email.lower()).first()

    def resolve(self, db: Session, participant_id: int) -> Optional[models.Participant]:
        """Registry lookup: participant id to profile, None when unknown or inactive."""
        try:
            return (
                db.query(self.model)
                .filter(self.model.id == participant_id, self.model.is_active.is_(True))
                .first()
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error('Error resolving participant %s: %s', participant_id, str(e))
            raise TransientIOFailure(str(e))

    def get_active(self, db: Session) -> List[models.Participant]:
        return (
            db.query(self.model)
            .filter(self.model.is_active.is_(True))
            .order_by(self.model.full_name)
            .all()
        )


participant = CRUDParticipant(models.Participant)
