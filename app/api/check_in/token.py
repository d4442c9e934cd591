"""Tamper-evident check-in credentials.

A credential is the base64 text of
``{participant_id}_{activity_id}_{expires_at_ms}_{tag}`` where ``tag`` is the
hex HMAC-SHA256 of the first three fields under the signing secret.
"""

import base64
import binascii
import hashlib
import hmac
from datetime import datetime
from typing import NamedTuple

from app.core.config import settings
from app.core.utils import from_epoch_ms, to_epoch_ms


class DecodedCredential(NamedTuple):
    participant_id: int
    activity_id: int
    expires_ms: int
    tag: str

    @property
    def expires_at(self) -> datetime:
        return from_epoch_ms(self.expires_ms)

    @property
    def subject(self) -> str:
        return credential_subject(
            self.participant_id, self.activity_id, self.expires_ms
        )


class MalformedCredential(ValueError):
    pass


def credential_subject(participant_id: int, activity_id: int, expires_ms: int) -> str:
    return f'{participant_id}_{activity_id}_{expires_ms}'


def compute_tag(subject: str, secret: str = None) -> str:
    secret = settings.CHECK_IN_SIGNING_SECRET if secret is None else secret
    return hmac.new(
        secret.encode('utf-8'), subject.encode('utf-8'), hashlib.sha256
    ).hexdigest()


def verify_tag(subject: str, tag: str, secret: str = None) -> bool:
    return hmac.compare_digest(compute_tag(subject, secret), tag)


def build_credential(
    participant_id: int, activity_id: int, expires_at: datetime
) -> str:
    subject = credential_subject(participant_id, activity_id, to_epoch_ms(expires_at))
    raw = f'{subject}_{compute_tag(subject)}'
    return base64.b64encode(raw.encode('utf-8')).decode('ascii')


def decode_credential(payload: str) -> DecodedCredential:
    try:
        raw = base64.b64decode(payload.strip(), validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError) as e:
        raise MalformedCredential(f'Not a credential: {e}')

    parts = raw.split('_')
    if len(parts) != 4:
        raise MalformedCredential('Credential must have 4 parts')

    participant_id, activity_id, expires_ms, tag = parts
    try:
        decoded = DecodedCredential(
            participant_id=int(participant_id),
            activity_id=int(activity_id),
            expires_ms=int(expires_ms),
            tag=tag,
        )
        decoded.expires_at  # out of range timestamps raise here
    except (ValueError, OverflowError) as e:
        raise MalformedCredential(f'Invalid credential field: {e}')
    return decoded
