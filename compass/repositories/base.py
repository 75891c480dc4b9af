"""
Base CRUD Repository Pattern
Generic repository with common database operations
"""

from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar, Union
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.sql import func
from pydantic import BaseModel
import structlog

from compass.core.database import Base

logger = structlog.get_logger()

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Base CRUD repository with generic database operations
    """

    def __init__(self, model: Type[ModelType]):
        """
        Initialize CRUD repository

        Args:
            model: SQLAlchemy model class
        """
        self.model = model

    def _live(self, query, include_deleted: bool = False):
        if hasattr(self.model, 'is_deleted') and not include_deleted:
            query = query.where(self.model.is_deleted == False)
        return query

    async def get(
        self,
        db: AsyncSession,
        id: Union[UUID, str, int],
        include_deleted: bool = False
    ) -> Optional[ModelType]:
        """
        Get a single record by ID

        Args:
            db: Database session
            id: Record ID
            include_deleted: Include soft-deleted records

        Returns:
            Model instance or None
        """
        try:
            query = self._live(select(self.model).where(self.model.id == id), include_deleted)

            result = await db.execute(query)
            record = result.scalar_one_or_none()

            if record:
                logger.debug("Record retrieved", model=self.model.__name__, id=id)
            else:
                logger.debug("Record not found", model=self.model.__name__, id=id)

            return record

        except Exception as e:
            logger.error("Error retrieving record", model=self.model.__name__, id=id, error=str(e))
            raise

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        include_deleted: bool = False
    ) -> List[ModelType]:
        """
        Get multiple records with pagination and equality filters

        Args:
            db: Database session
            skip: Number of records to skip
            limit: Maximum number of records to return
            filters: Dictionary of field filters
            include_deleted: Include soft-deleted records

        Returns:
            List of model instances
        """
        try:
            query = self._live(select(self.model), include_deleted)

            if filters:
                for field, value in filters.items():
                    if hasattr(self.model, field):
                        if isinstance(value, list):
                            query = query.where(getattr(self.model, field).in_(value))
                        else:
                            query = query.where(getattr(self.model, field) == value)

            if hasattr(self.model, 'created_at'):
                query = query.order_by(self.model.created_at.desc())

            query = query.offset(skip).limit(limit)

            result = await db.execute(query)
            records = list(result.scalars().all())

            logger.debug(
                "Multiple records retrieved",
                model=self.model.__name__,
                count=len(records),
                skip=skip,
                limit=limit
            )

            return records

        except Exception as e:
            logger.error("Error retrieving multiple records", model=self.model.__name__, error=str(e))
            raise

    async def find_ids_by(
        self,
        db: AsyncSession,
        field: str,
        values: Sequence[str],
    ) -> Dict[str, UUID]:
        """
        Resolve many unique values to record ids with a single query

        Args:
            db: Database session
            field: Unique column name to match against
            values: Candidate values

        Returns:
            Mapping of each value that exists to its record id
        """
        if not values:
            return {}

        column = getattr(self.model, field)
        query = self._live(select(column, self.model.id).where(column.in_(list(values))))

        result = await db.execute(query)
        found = {value: record_id for value, record_id in result.all()}

        logger.debug(
            "Bulk lookup completed",
            model=self.model.__name__,
            field=field,
            candidates=len(values),
            found=len(found),
        )
        return found

    async def all_values(self, db: AsyncSession, field: str) -> List[str]:
        """Every live value of a column, used to warm membership filters"""
        column = getattr(self.model, field)
        result = await db.execute(self._live(select(column)))
        return list(result.scalars().all())

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: Union[CreateSchemaType, Dict[str, Any]],
        commit: bool = True
    ) -> ModelType:
        """
        Create a new record

        Args:
            db: Database session
            obj_in: Pydantic model or dict with creation data
            commit: Whether to commit the transaction

        Returns:
            Created model instance
        """
        try:
            obj_in_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
            db_obj = self.model(**obj_in_data)

            db.add(db_obj)

            if commit:
                await db.commit()
                await db.refresh(db_obj)
            else:
                await db.flush()

            logger.info("Record created", model=self.model.__name__, id=db_obj.id)
            return db_obj

        except Exception as e:
            if commit:
                await db.rollback()
            logger.error("Error creating record", model=self.model.__name__, error=str(e))
            raise

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        commit: bool = True
    ) -> ModelType:
        """
        Update an existing record

        Args:
            db: Database session
            db_obj: Existing model instance
            obj_in: Pydantic model or dict with update data
            commit: Whether to commit the transaction

        Returns:
            Updated model instance
        """
        try:
            if isinstance(obj_in, dict):
                update_data = obj_in
            else:
                update_data = obj_in.model_dump(exclude_unset=True)

            for field, value in update_data.items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)

            if commit:
                await db.commit()
                await db.refresh(db_obj)
            else:
                await db.flush()

            logger.info("Record updated", model=self.model.__name__, id=db_obj.id)
            return db_obj

        except Exception as e:
            if commit:
                await db.rollback()
            logger.error("Error updating record", model=self.model.__name__, id=db_obj.id, error=str(e))
            raise

    async def delete(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        commit: bool = True
    ) -> ModelType:
        """
        Soft-delete a record so it no longer resolves as a live subject

        Args:
            db: Database session
            db_obj: Existing model instance
            commit: Whether to commit the transaction

        Returns:
            Deleted model instance
        """
        try:
            if hasattr(db_obj, 'is_deleted'):
                db_obj.is_deleted = True
                db_obj.deleted_at = func.now()
            else:
                await db.delete(db_obj)

            if commit:
                await db.commit()
            else:
                await db.flush()

            logger.info("Record deleted", model=self.model.__name__, id=db_obj.id)
            return db_obj

        except Exception as e:
            if commit:
                await db.rollback()
            logger.error("Error deleting record", model=self.model.__name__, id=db_obj.id, error=str(e))
            raise
