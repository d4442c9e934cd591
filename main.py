from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from app.api.activities.routes import router as activities_router
from app.api.attendances.routes import router as attendances_router
from app.api.check_in.routes import router as check_in_router
from app.api.event_scans.routes import router as event_scans_router
from app.api.participants.routes import router as participants_router
from app.core.config import Environment, settings
from app.core.database import create_db
from app.core.logger import logger


def check_signing_secret():
    if not settings.CHECK_IN_SIGNING_SECRET:
        logger.error('CHECK_IN_SIGNING_SECRET is not set')
        raise RuntimeError(
            'CHECK_IN_SIGNING_SECRET must be set outside the test environment'
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENVIRONMENT != Environment.TEST:
        check_signing_secret()
        create_db()
    yield


app = FastAPI(lifespan=lifespan)

# Include routers
app.include_router(activities_router, prefix='/activities', tags=['Activities'])
app.include_router(attendances_router, prefix='/attendances', tags=['Attendances'])
app.include_router(check_in_router, prefix='/check-in', tags=['Check In'])
app.include_router(event_scans_router, prefix='/event-scans', tags=['Event Scans'])
app.include_router(participants_router, prefix='/participants', tags=['Participants'])

origins = ['*']
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.get('/', include_in_schema=False)
def ping():
    return Response(status_code=200)
