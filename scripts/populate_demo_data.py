import csv
import json
import os
from datetime import datetime

from sqlalchemy.orm import Session

from app.api.activities import crud as activity_crud
from app.api.activities import schemas as activity_schemas
from app.api.activities.models import Activity
from app.api.event_scans import crud as event_scan_crud
from app.api.event_scans import schemas as event_scan_schemas
from app.api.participants import crud as participant_crud
from app.api.participants import schemas as participant_schemas
from app.core.config import settings
from app.core.database import SessionLocal, create_db
from app.core.security import SYSTEM_TOKEN

DATETIME_FIELDS = (
    'start_datetime',
    'end_datetime',
    'attendance_open_time',
    'attendance_close_time',
)


def load_activity_json(json_path: str):
    with open(json_path, 'r') as f:
        data = json.load(f)
    # Parse date strings to datetime objects
    for field in DATETIME_FIELDS:
        if data.get(field):
            data[field] = datetime.fromisoformat(data[field])
    return data


def read_csv(csv_path: str):
    with open(csv_path, newline='') as csvfile:
        reader = csv.DictReader(csvfile)
        return list(reader)


def create_activity(db: Session, activity_data: dict) -> Activity:
    print('Creating Activity...')
    activity_schema = activity_schemas.ActivityCreate(**activity_data)
    activity = activity_crud.activity.get_by_slug(db, activity_schema.slug)
    if not activity:
        activity = activity_crud.activity.create(db, activity_schema, SYSTEM_TOKEN)
    print(f'Activity created: {activity.id} - {activity.title}')
    return activity


def get_or_create_participant(db: Session, row: dict):
    email = row['email'].lower().strip()
    participant = participant_crud.participant.get_by_email(db, email)
    if participant:
        print(f'Participant already exists: {participant.email}')
        return participant

    participant_data = participant_schemas.ParticipantCreate(
        full_name=row['full_name'],
        email=email,
        student_number=row['student_number'],
        study_program=row['study_program'],
    )
    participant = participant_crud.participant.create(db, participant_data)
    print(f'Participant created: {participant.id} - {participant.email}')
    return participant


def get_or_create_event_participant(db: Session, row: dict):
    crud = event_scan_crud.event_scan
    existing = crud.get_registered(db, row['qr_code'].strip())
    if existing:
        print(f'Event participant already exists: {existing.qr_code}')
        return existing

    data = event_scan_schemas.EventParticipantCreate(**row)
    event_participant = crud.register(db, data)
    print(f'Event participant created: {event_participant.qr_code}')
    return event_participant


def main():
    create_db()
    db = SessionLocal()
    try:
        print('\nDatabase Connection Information:')
        print('Database Type: PostgreSQL')
        print(f'Host: {settings.DB_HOST}')
        print(f'Port: {settings.DB_PORT}')
        print(f'Database Name: {settings.DB_NAME}')
        print(f'Username: {settings.DB_USERNAME}')

        print('\nThis script will create demo data in the database:')
        print('1. An Activity from activity.json')
        print('2. Participants from participants.csv')
        print('3. Contest participants from event_participants.csv')

        confirm = input('Do you want to proceed? (y/N): ')
        if confirm.lower() != 'y':
            print('Operation cancelled')
            return

        base_dir = os.path.dirname(__file__)
        activity_data = load_activity_json(os.path.join(base_dir, 'activity.json'))
        create_activity(db, activity_data)
        for row in read_csv(os.path.join(base_dir, 'participants.csv')):
            get_or_create_participant(db, row)
        for row in read_csv(os.path.join(base_dir, 'event_participants.csv')):
            get_or_create_event_participant(db, row)
    finally:
        db.close()


if __name__ == '__main__':
    main()
