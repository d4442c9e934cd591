from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from app.api.activities import schemas
from app.api.activities.crud import activity as activity_crud
from app.api.activities.window import WindowStatus, get_window_status
from app.api.attendances.crud import attendance as attendance_crud
from app.api.attendances.schemas import Roster
from app.core.config import settings
from app.core.database import get_db
from app.core.security import SYSTEM_TOKEN, TokenData, check_api_key, get_current_user
from app.core.utils import current_time

router = APIRouter()


@router.post(
    '/',
    response_model=schemas.Activity,
    status_code=status.HTTP_201_CREATED,
)
def create_activity(
    activity: schemas.ActivityCreate,
    x_api_key: str = Header(...),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.ADMIN_API_KEY)
    return activity_crud.create(db=db, obj=activity, user=SYSTEM_TOKEN)


@router.get('/', response_model=list[schemas.Activity])
def get_activities(
    current_user: TokenData = Depends(get_current_user),
    filters: schemas.ActivityFilter = Depends(),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    return activity_crud.find(
        db=db,
        skip=skip,
        limit=limit,
        filters=filters,
        user=current_user,
        sort_by='start_datetime',
        sort_order='asc',
    )


@router.get('/{activity_id}', response_model=schemas.Activity)
def get_activity(
    activity_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return activity_crud.get(db=db, id=activity_id, user=current_user)


@router.patch('/{activity_id}', response_model=schemas.Activity)
def update_activity(
    activity_id: int,
    activity: schemas.ActivityUpdate,
    x_api_key: str = Header(...),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.ADMIN_API_KEY)
    return activity_crud.update(
        db=db,
        id=activity_id,
        obj=activity,
        user=SYSTEM_TOKEN,
    )


@router.get('/{activity_id}/window', response_model=WindowStatus)
def get_activity_window(
    activity_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    activity = activity_crud.get(db=db, id=activity_id, user=current_user)
    return get_window_status(activity, current_time())


@router.get('/{activity_id}/roster', response_model=Roster)
def get_activity_roster(
    activity_id: int,
    x_api_key: str = Header(...),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.ADMIN_API_KEY)
    return attendance_crud.roster(db=db, activity_id=activity_id)
