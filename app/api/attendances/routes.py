from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from app.api.attendances import schemas
from app.api.attendances.crud import attendance as attendance_crud
from app.core.config import settings
from app.core.database import get_db
from app.core.security import SYSTEM_TOKEN, TokenData, check_api_key, get_current_user

router = APIRouter()


@router.get('/me', response_model=list[schemas.ActivityAttendance])
def get_my_attendances(
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return attendance_crud.summary_for_participant(db=db, user=current_user)


@router.get('/', response_model=list[schemas.Attendance])
def get_attendances(
    x_api_key: str = Header(...),
    filters: schemas.AttendanceFilter = Depends(),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.ADMIN_API_KEY)
    return attendance_crud.find(
        db=db,
        skip=skip,
        limit=limit,
        filters=filters,
        user=SYSTEM_TOKEN,
    )


@router.post(
    '/manual',
    response_model=schemas.Attendance,
    status_code=status.HTTP_201_CREATED,
)
def create_manual_attendance(
    attendance: schemas.ManualAttendanceCreate,
    x_api_key: str = Header(...),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.ADMIN_API_KEY)
    return attendance_crud.create_manual(db=db, obj=attendance)


@router.post(
    '/excuses',
    response_model=schemas.Attendance,
    status_code=status.HTTP_201_CREATED,
)
def submit_excuse(
    excuse: schemas.ExcuseCreate,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return attendance_crud.submit_excuse(db=db, obj=excuse, user=current_user)


@router.post('/{attendance_id}/review', response_model=schemas.Attendance)
def review_excuse(
    attendance_id: int,
    review: schemas.ExcuseReview,
    x_api_key: str = Header(...),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.ADMIN_API_KEY)
    return attendance_crud.review_excuse(db=db, id=attendance_id, review=review)
