import os
from enum import Enum

from dotenv import load_dotenv

load_dotenv()


class Environment(str, Enum):
    TEST = 'test'
    PRODUCTION = 'production'
    DEVELOP = 'develop'


class Settings:
    ENVIRONMENT: Environment = Environment(os.getenv('ENVIRONMENT') or Environment.TEST)
    DB_USERNAME: str = os.getenv('DB_USERNAME')
    DB_PASSWORD: str = os.getenv('DB_PASSWORD')
    DB_HOST: str = os.getenv('DB_HOST')
    DB_PORT: str = os.getenv('DB_PORT')
    DB_NAME: str = os.getenv('DB_NAME')

    SQLALCHEMY_TEST_DATABASE_URL = 'sqlite:///:memory:'
    DATABASE_URL: str = (
        f'postgresql://{DB_USERNAME}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}'
        if ENVIRONMENT != Environment.TEST
        else SQLALCHEMY_TEST_DATABASE_URL
    )

    SECRET_KEY: str = os.getenv('SECRET_KEY', '')
    CHECK_IN_SIGNING_SECRET: str = os.getenv('CHECK_IN_SIGNING_SECRET', '')
    CHECK_IN_API_KEY: str = os.getenv('CHECK_IN_API_KEY')
    ADMIN_API_KEY: str = os.getenv('ADMIN_API_KEY')

    # Timing (minutes / seconds)
    TOKEN_TTL_MINUTES: int = int(os.getenv('TOKEN_TTL_MINUTES', '5'))
    SCAN_COOLDOWN_MINUTES: int = int(os.getenv('SCAN_COOLDOWN_MINUTES', '10'))
    SCAN_SUSPEND_SUCCESS_SECONDS: int = int(
        os.getenv('SCAN_SUSPEND_SUCCESS_SECONDS', '10')
    )
    SCAN_SUSPEND_FAILURE_SECONDS: int = int(
        os.getenv('SCAN_SUSPEND_FAILURE_SECONDS', '5')
    )
    WINDOW_TICK_SECONDS: int = int(os.getenv('WINDOW_TICK_SECONDS', '1'))


settings = Settings()
