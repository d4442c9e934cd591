from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.core.database import Base
from app.core.security import Token, create_access_token
from app.core.utils import current_time


class Participant(Base):
    __tablename__ = 'participants'

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        unique=True,
        index=True,
    )
    full_name = Column(String, nullable=False)
    email = Column(String, index=True, nullable=False, unique=True)
    student_number = Column(String, index=True)
    study_program = Column(String)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=current_time)
    updated_at = Column(DateTime, default=current_time, onupdate=current_time)

    def get_authorization(self) -> Token:
        data = {'participant_id': self.id, 'email': self.email}
        return Token(
            access_token=create_access_token(data=data),
            token_type='Bearer',
        )
