import base64
from datetime import datetime

import pytest

from app.api.check_in.token import (
    MalformedCredential,
    build_credential,
    compute_tag,
    decode_credential,
    verify_tag,
)
from app.core.utils import from_epoch_ms, to_epoch_ms

EXPIRES_AT = datetime(2025, 1, 1, 8, 10)


def test_credential_layout():
    payload = build_credential(7, 3, EXPIRES_AT)
    raw = base64.b64decode(payload).decode('utf-8')
    participant_id, activity_id, expires_ms, tag = raw.split('_')

    assert participant_id == '7'
    assert activity_id == '3'
    assert int(expires_ms) == to_epoch_ms(EXPIRES_AT)
    assert tag == compute_tag(f'7_3_{expires_ms}')


def test_decode_credential():
    decoded = decode_credential(build_credential(7, 3, EXPIRES_AT))

    assert decoded.participant_id == 7
    assert decoded.activity_id == 3
    assert decoded.expires_at == EXPIRES_AT
    assert verify_tag(decoded.subject, decoded.tag)


def test_tampered_credential_fails_tag_check():
    raw = base64.b64decode(build_credential(7, 3, EXPIRES_AT)).decode('utf-8')
    tampered = '8' + raw[1:]
    decoded = decode_credential(base64.b64encode(tampered.encode()).decode())

    assert decoded.participant_id == 8
    assert not verify_tag(decoded.subject, decoded.tag)


def test_tag_depends_on_secret():
    assert compute_tag('7_3_1', secret='one') != compute_tag('7_3_1', secret='two')


@pytest.mark.parametrize(
    'payload',
    [
        'not base64 at all!',
        base64.b64encode(b'1_2_3').decode(),
        base64.b64encode(b'a_2_3_tag').decode(),
        base64.b64encode(b'\xff\xfe').decode(),
    ],
)
def test_malformed_credentials(payload):
    with pytest.raises(MalformedCredential):
        decode_credential(payload)


def test_epoch_ms_is_exact():
    value = datetime(2025, 1, 1, 8, 10, 0, 123000)
    assert from_epoch_ms(to_epoch_ms(value)) == value
