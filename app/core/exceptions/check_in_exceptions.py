from typing import Optional

from fastapi import HTTPException, status


class CheckInError(HTTPException):
    """Base class for check-in rejections.

    The detail carries a stable ``error`` kind next to the human readable
    message so scanner and generator UIs can tell the cases apart.
    """

    kind: str = 'CHECK_IN_ERROR'
    status_code_default: int = status.HTTP_400_BAD_REQUEST
    retryable: bool = False

    def __init__(self, message: str, **extra):
        self.message = message
        detail = {
            'error': self.kind,
            'message': message,
            'retryable': self.retryable,
            **extra,
        }
        super().__init__(self.status_code_default, detail, None)


class WindowNotOpen(CheckInError):
    kind = 'WINDOW_NOT_OPEN'
    status_code_default = status.HTTP_409_CONFLICT

    def __init__(self, phase: str):
        super().__init__(
            'Attendance window is not open for this activity', phase=phase
        )


class TokenExpired(CheckInError):
    kind = 'TOKEN_EXPIRED'
    status_code_default = status.HTTP_410_GONE

    def __init__(self):
        super().__init__('QR code has expired. Please generate a new one.')


class InvalidCode(CheckInError):
    kind = 'INVALID_CODE'
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, reason: str = 'QR code is not valid or not registered'):
        super().__init__(reason)


class DuplicateWithinCooldown(CheckInError):
    kind = 'DUPLICATE_WITHIN_COOLDOWN'
    status_code_default = status.HTTP_409_CONFLICT

    def __init__(self, cooldown_minutes: int, retry_after_seconds: int):
        super().__init__(
            f'Already checked in within the last {cooldown_minutes} minutes',
            retry_after_seconds=retry_after_seconds,
        )


class AlreadyCheckedIn(CheckInError):
    kind = 'ALREADY_CHECKED_IN'
    status_code_default = status.HTTP_409_CONFLICT

    def __init__(self):
        super().__init__('Attendance has already been recorded for this activity')


class ScannerSuspended(CheckInError):
    kind = 'SCANNER_SUSPENDED'
    status_code_default = status.HTTP_429_TOO_MANY_REQUESTS
    retryable = True

    def __init__(self, retry_after_seconds: int):
        super().__init__(
            'Scanner is paused after the previous scan',
            retry_after_seconds=retry_after_seconds,
        )


class TransientIOFailure(CheckInError):
    kind = 'TRANSIENT_IO_FAILURE'
    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True

    def __init__(self, detail: Optional[str] = None):
        msg = 'Temporary storage failure. Please try again.'
        if detail:
            msg = f'{msg} Error detail: {detail}'
        super().__init__(msg)
