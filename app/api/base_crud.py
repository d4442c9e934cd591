from typing import Generic, List, Optional, Type, TypeVar

from fastapi import HTTPException, status
from psycopg2 import errors as pg_errors
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.declarative import DeclarativeMeta
from sqlalchemy.orm import Query, Session

from app.core.exceptions.check_in_exceptions import TransientIOFailure
from app.core.logger import logger
from app.core.security import SYSTEM_TOKEN, TokenData

ModelType = TypeVar('ModelType', bound=DeclarativeMeta)
CreateSchemaType = TypeVar('CreateSchemaType', bound=BaseModel)
UpdateSchemaType = TypeVar('UpdateSchemaType', bound=BaseModel)


def integrity_detail(e: IntegrityError, resource: str) -> str:
    orig = str(e.orig)
    detail = 'Integrity error'
    if isinstance(e.orig, pg_errors.UniqueViolation) and 'DETAIL' in orig:
        error_detail = orig.split('DETAIL: ')[1].split('\n')[0].strip()
        if '(' in error_detail and ')' in error_detail:
            keys = error_detail.split('(')[1].split(')')[0]
            detail = f'It already exists a {resource} with this {keys}'
    elif 'UNIQUE constraint failed' in orig:
        keys = orig.split('UNIQUE constraint failed: ')[1].strip()
        detail = f'It already exists a {resource} with this {keys}'
    return detail


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, model: Type[ModelType]):
        self.model = model

    def _check_permission(self, db_obj: ModelType, user: TokenData) -> bool:
        """Override this method to implement permission checks"""
        return user == SYSTEM_TOKEN

    def _apply_filters(
        self, query: Query, filters: Optional[BaseModel] = None
    ) -> Query:
        """Override this method to implement filter logic"""
        if not filters:
            return query

        for field, value in filters.model_dump(exclude_none=True).items():
            op = 'eq'
            if field.endswith('_in') and isinstance(value, list):
                field = field[:-3]
                op = 'in_'
            if hasattr(self.model, field) and value is not None:
                if op == 'in_':
                    query = query.filter(getattr(self.model, field).in_(value))
                else:
                    query = query.filter(getattr(self.model, field) == value)
        return query

    def create(
        self,
        db: Session,
        obj: CreateSchemaType,
        user: Optional[TokenData] = None,
    ) -> ModelType:
        """Create a new record."""
        try:
            obj_data = obj.model_dump()
            model_columns = self.model.__table__.columns.keys()
            filtered_data = {k: v for k, v in obj_data.items() if k in model_columns}

            db_obj = self.model(**filtered_data)
            db.add(db_obj)
            db.commit()
            db.refresh(db_obj)
            return db_obj
        except IntegrityError as e:
            logger.error('Error creating %s: %s', self.model.__name__, str(e))
            db.rollback()
            detail = integrity_detail(e, self.model.__name__)
            logger.error('Integrity error: %s', detail)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=detail,
            )
        except SQLAlchemyError as e:
            logger.error('SQL error creating %s: %s', self.model.__name__, str(e))
            db.rollback()
            raise TransientIOFailure(str(e))

    def get(self, db: Session, id: int, user: TokenData) -> ModelType:
        """Get a single record by id with permission check."""
        try:
            obj = db.query(self.model).filter(self.model.id == id).first()
        except SQLAlchemyError as e:
            logger.error('SQL error reading %s %s: %s', self.model.__name__, id, str(e))
            db.rollback()
            raise TransientIOFailure(str(e))
        if not obj:
            logger.error('%s %s not found', self.model.__name__, id)
            raise HTTPException(
                status_code=404, detail=f'{self.model.__name__} not found'
            )
        if not self._check_permission(obj, user):
            err_msg = f'Not authorized to access this {self.model.__name__}: {obj.id}'
            logger.error(err_msg)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=err_msg)
        return obj

    def find(
        self,
        db: Session,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[BaseModel] = None,
        user: Optional[TokenData] = None,
        sort_by: str = 'created_at',
        sort_order: str = 'desc',
    ) -> List[ModelType]:
        """Get multiple records with pagination, filters and sorting."""
        query = db.query(self.model)
        query = self._apply_filters(query, filters)

        if not hasattr(self.model, sort_by):
            raise HTTPException(
                status_code=400, detail=f'Invalid sort field: {sort_by}'
            )

        order_by = getattr(self.model, sort_by)
        if sort_order == 'desc':
            order_by = order_by.desc()

        query = query.order_by(order_by)
        return query.offset(skip).limit(limit).all()

    def update(
        self,
        db: Session,
        id: int,
        obj: UpdateSchemaType,
        user: TokenData,
    ) -> ModelType:
        """Update a record."""
        db_obj = self.get(db, id, user)  # This will raise 404 if not found
        obj_data = obj.model_dump(exclude_unset=True)

        for field, value in obj_data.items():
            setattr(db_obj, field, value)

        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            detail = integrity_detail(e, self.model.__name__)
            logger.error('Integrity error: %s', detail)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
        except SQLAlchemyError as e:
            logger.error('SQL error updating %s: %s', self.model.__name__, str(e))
            db.rollback()
            raise TransientIOFailure(str(e))
        db.refresh(db_obj)
        return db_obj
