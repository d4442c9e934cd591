import asyncio
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    Header,
    HTTPException,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from sqlalchemy.orm import Session

from app.api.attendances.crud import attendance as attendance_crud
from app.api.attendances.models import attendance_key
from app.api.attendances.schemas import Attendance
from app.api.check_in import schemas
from app.api.check_in.crud import check_in as check_in_crud
from app.api.check_in.dependencies import (
    get_scanner_gate,
    get_token_cache,
    scanner_hold,
)
from app.core.broker import get_settlement_broker
from app.core.cache import ScannerGate, TokenCache
from app.core.config import settings
from app.core.database import get_db
from app.core.logger import logger
from app.core.qr import generate_qr_png
from app.core.security import (
    TokenData,
    check_api_key,
    decode_access_token,
    get_current_user,
)

router = APIRouter()


@router.post('/token/{activity_id}', response_model=schemas.TokenIssueResponse)
def issue_token(
    activity_id: int,
    current_user: TokenData = Depends(get_current_user),
    cache: TokenCache = Depends(get_token_cache),
    db: Session = Depends(get_db),
):
    return check_in_crud.issue_token(
        db=db,
        cache=cache,
        participant_id=current_user.participant_id,
        activity_id=activity_id,
    )


@router.get('/token/{activity_id}.png')
def get_token_image(
    activity_id: int,
    current_user: TokenData = Depends(get_current_user),
    cache: TokenCache = Depends(get_token_cache),
    db: Session = Depends(get_db),
):
    token = check_in_crud.issue_token(
        db=db,
        cache=cache,
        participant_id=current_user.participant_id,
        activity_id=activity_id,
    )
    return Response(content=generate_qr_png(token.payload), media_type='image/png')


@router.get('/token/{activity_id}', response_model=schemas.TokenIssueResponse)
def get_token(
    activity_id: int,
    current_user: TokenData = Depends(get_current_user),
    cache: TokenCache = Depends(get_token_cache),
):
    return check_in_crud.get_cached_token(
        cache=cache,
        participant_id=current_user.participant_id,
        activity_id=activity_id,
    )


@router.post('/scan', response_model=schemas.CheckInResponse)
def scan_token(
    scan: schemas.ScanRequest,
    x_api_key: str = Header(...),
    x_scanner_id: Optional[str] = Header(None),
    x_staff_id: Optional[str] = Header(None),
    gate: ScannerGate = Depends(get_scanner_gate),
    db: Session = Depends(get_db),
):
    check_api_key(x_api_key, settings.CHECK_IN_API_KEY)
    with scanner_hold(gate, x_scanner_id):
        return check_in_crud.validate_token(
            db=db,
            scan=scan,
            scanner_id=x_scanner_id,
            staff_id=x_staff_id,
        )


async def _forward_settlements(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        message = await queue.get()
        await websocket.send_json(message)


async def _wait_disconnect(websocket: WebSocket):
    while True:
        message = await websocket.receive()
        if message['type'] == 'websocket.disconnect':
            return


@router.websocket('/ws/{activity_id}')
async def watch_attendance(
    websocket: WebSocket,
    activity_id: int,
    token: str = Query(...),
    db: Session = Depends(get_db),
):
    """Pushes the current record for the caller, then every new settlement."""
    try:
        user = decode_access_token(token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    key = attendance_key(activity_id, user.participant_id)
    await websocket.accept()

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_settlement(settled_key: str, record: Optional[dict]) -> None:
        message = schemas.SettlementMessage(key=settled_key, record=record)
        loop.call_soon_threadsafe(queue.put_nowait, message.model_dump(mode='json'))

    subscription = get_settlement_broker().subscribe(key, on_settlement)
    logger.info('Watching settlements for %s', key)
    try:
        existing = attendance_crud.get_by_key(db, activity_id, user.participant_id)
        snapshot = schemas.SettlementMessage(
            key=key,
            record=Attendance.model_validate(existing) if existing else None,
        )
        # Settlements arrive through the broker; hand the connection back
        db.close()
        await websocket.send_json(snapshot.model_dump(mode='json'))

        tasks = {
            asyncio.ensure_future(_forward_settlements(websocket, queue)),
            asyncio.ensure_future(_wait_disconnect(websocket)),
        }
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            task.result()
    except WebSocketDisconnect:
        logger.info('Watcher for %s disconnected', key)
    finally:
        subscription.close()
        logger.info('Stopped watching settlements for %s', key)
