from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.api.check_in.dependencies import get_scanner_gate, scanner_hold
from app.api.event_scans import schemas
from app.api.event_scans.crud import event_scan as event_scan_crud
from app.core.cache import ScannerGate
from app.core.config import settings
from app.core.database import get_db
from app.core.security import check_api_key

router = APIRouter()


@router.post(
    '/participants',
    response_model=schemas.EventParticipant,
    status_code=status.HTTP_201_CREATED,
)
def register_event_participant(
    participant: schemas.EventParticipantCreate,
    x_api_key: str = Header(...),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.ADMIN_API_KEY)
    return event_scan_crud.register(db=db, obj=participant)


@router.post('/scan', response_model=schemas.EventScanResponse)
def scan_code(
    scan: schemas.EventScanRequest,
    x_api_key: str = Header(...),
    x_scanner_id: Optional[str] = Header(None),
    gate: ScannerGate = Depends(get_scanner_gate),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.CHECK_IN_API_KEY)
    with scanner_hold(gate, x_scanner_id):
        return event_scan_crud.validate_code(
            db=db,
            payload=scan.payload,
            scanner_id=x_scanner_id,
        )


@router.get('/{code}/last', response_model=schemas.EventScan)
def get_last_scan(
    code: str,
    x_api_key: str = Header(...),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.CHECK_IN_API_KEY)
    last_scan = event_scan_crud.get_last_scan(db=db, code=code)
    if not last_scan:
        raise HTTPException(status_code=404, detail='No scans for this code')
    return last_scan


@router.get('/{code}', response_model=list[schemas.EventScan])
def get_scans(
    code: str,
    x_api_key: str = Header(...),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.ADMIN_API_KEY)
    return event_scan_crud.get_scans(db=db, code=code)
