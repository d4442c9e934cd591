from datetime import datetime, timedelta

import pytest
from fastapi import WebSocketDisconnect, status
from jose import jwt

from app.core.config import settings


def test_invalid_token(client):
    response = client.get(
        '/attendances/me', headers={'Authorization': 'Bearer invalid_token'}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_expired_token(client):
    expired_token = jwt.encode(
        {
            'participant_id': 1,
            'email': 'test@example.com',
            'exp': datetime.utcnow() - timedelta(minutes=1),
        },
        settings.SECRET_KEY,
        algorithm='HS256',
    )

    response = client.get(
        '/attendances/me', headers={'Authorization': f'Bearer {expired_token}'}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()['detail'] == 'Token has expired'


def test_token_without_participant(client):
    token = jwt.encode({'email': 'test@example.com'}, settings.SECRET_KEY, algorithm='HS256')

    response = client.get('/attendances/me', headers={'Authorization': f'Bearer {token}'})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()['detail'] == 'Could not validate credentials'


def test_participant_authorization(client, test_participant):
    token = test_participant.get_authorization()

    response = client.get(
        '/participants/me',
        headers={'Authorization': f'Bearer {token.access_token}'},
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()['email'] == test_participant.email


def test_watch_rejects_invalid_token(client, test_activity):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f'/check-in/ws/{test_activity.id}?token=bad') as ws:
            ws.receive_json()
