"""
Base Data Access Object (DAO) class.

WHY: The DAO pattern separates database operations from business logic,
making the codebase more testable and maintainable. Tenant-root tables
(organizations, invitations) go through these DAOs; namespaced records go
through the org-scoped store instead.
"""

import logging
from typing import Generic, TypeVar, Type, Optional, Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from assetdesk.core.exceptions import StorageWriteError
from assetdesk.models.base import Base

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType]):
    """
    Base Data Access Object: create, read and update for root models.

    Type Parameters:
        ModelType: The SQLAlchemy model class this DAO manages
    """

    #: Name of the string primary-key column
    pk_field: str = "id"

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize DAO with model class and database session.

        Args:
            model: The SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    @property
    def _pk(self):
        return getattr(self.model, self.pk_field)

    async def flush(self, action: str) -> None:
        """
        Flush pending changes, translating driver errors.

        Raises:
            StorageWriteError: If the database rejects the write
        """
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"{self.model.__name__} {action} failed: {e}")
            raise StorageWriteError(
                message=f"Failed to {action} {self.model.__name__.lower()}",
                model=self.model.__name__,
            ) from e

    async def create(self, **kwargs: Any) -> ModelType:
        """
        Create a new record.

        Args:
            **kwargs: Field values for the new record

        Returns:
            The created model instance

        Raises:
            StorageWriteError: If constraints are violated
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.flush("create")
        await self.session.refresh(instance)
        return instance

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """
        Retrieve a single record by primary key.

        Returns:
            The model instance if found, None otherwise
        """
        result = await self.session.execute(select(self.model).where(self._pk == id))
        return result.scalar_one_or_none()

    async def update(self, id: str, **kwargs: Any) -> Optional[ModelType]:
        """
        Update an existing record.

        Assigns through the ORM so ``onupdate`` timestamps fire and JSON
        columns are replaced wholesale.

        Returns:
            Updated model instance if found, None otherwise
        """
        instance = await self.get_by_id(id)
        if instance is None:
            return None
        for field, value in kwargs.items():
            setattr(instance, field, value)
        await self.flush("update")
        await self.session.refresh(instance)
        return instance

