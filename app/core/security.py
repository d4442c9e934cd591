from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from app.core.config import settings
from app.core.logger import logger
from app.core.utils import current_time


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    participant_id: int
    email: str


# Constants
ALGORITHM = 'HS256'

# System token used for internal service operations
# participant_id=0 represents a system-level operation rather than a real user
SYSTEM_TOKEN = TokenData(participant_id=0, email='')

# Participant bearer tokens are issued by POST /participants/token
oauth2_scheme = OAuth2PasswordBearer(tokenUrl='participants/token')


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        to_encode.update({'exp': current_time() + expires_delta})

    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> TokenData:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail='Could not validate credentials',
        headers={'WWW-Authenticate': 'Bearer'},
    )

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.error('Token has expired')
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Token has expired',
            headers={'WWW-Authenticate': 'Bearer'},
        )
    except JWTError as e:
        logger.error('Error decoding token: %s', str(e))
        raise credentials_exception

    participant_id: int = payload.get('participant_id')
    email: str = payload.get('email')
    if participant_id is None or email is None:
        logger.error('Invalid token payload: %s', payload)
        raise credentials_exception

    return TokenData(participant_id=participant_id, email=email)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> TokenData:
    return decode_access_token(token)


def check_api_key(received: Optional[str], expected: Optional[str]) -> None:
    if not expected or received != expected:
        logger.error('Invalid API key')
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Invalid API key',
        )
