from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.api.participants import schemas
from app.api.participants.crud import participant as participant_crud
from app.core.config import settings
from app.core.database import get_db
from app.core.logger import logger
from app.core.security import (
    SYSTEM_TOKEN,
    Token,
    TokenData,
    check_api_key,
    get_current_user,
)

router = APIRouter()


@router.post('/', response_model=schemas.Participant)
def create_participant(
    participant: schemas.ParticipantCreate,
    x_api_key: str = Header(...),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.ADMIN_API_KEY)
    logger.info('Creating participant: %s', participant.email)
    return participant_crud.create(db=db, obj=participant)


@router.post('/token', response_model=Token)
def issue_participant_token(
    email: str,
    x_api_key: str = Header(...),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.ADMIN_API_KEY)
    participant = participant_crud.get_by_email(db=db, email=email)
    if not participant or not participant.is_active:
        logger.error('No active participant for %s', email)
        raise HTTPException(status_code=404, detail='Participant not found')
    logger.info('Issuing token for participant %s', participant.id)
    return participant.get_authorization()


@router.get('/me', response_model=schemas.Participant)
def get_me(
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return participant_crud.get(
        db=db, id=current_user.participant_id, user=current_user
    )


@router.get('/{participant_id}', response_model=schemas.Participant)
def get_participant(
    participant_id: int,
    x_api_key: str = Header(...),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.ADMIN_API_KEY)
    return participant_crud.get(db=db, id=participant_id, user=SYSTEM_TOKEN)
