"""
Base repository class with common CRUD operations.
"""
from typing import Generic, Optional, Type, TypeVar
from uuid import uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.infra.db.base import Base

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository providing common CRUD operations.

    Inherit from this class and specify the model type:
        class GameRepository(BaseRepository[Game]):
            def __init__(self, session: AsyncSession):
                super().__init__(Game, session)
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, **kwargs) -> ModelType:
        """Create a new record."""
        if "id" not in kwargs:
            kwargs["id"] = str(uuid4())

        obj = self.model(**kwargs)
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """Get a record by ID."""
        stmt = select(self.model).where(self.model.id == id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update(self, id: str, **kwargs) -> Optional[ModelType]:
        """Update a record by ID."""
        existing = await self.get_by_id(id)
        if existing is None:
            return None

        for key, value in kwargs.items():
            setattr(existing, key, value)
        await self.session.commit()
        await self.session.refresh(existing)
        return existing

    async def delete(self, id: str) -> bool:
        """Delete a record by ID. Returns True if deleted."""
        stmt = delete(self.model).where(self.model.id == id)
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0

    async def increment(self, id: str, column: str, amount: int = 1) -> Optional[int]:
        """Atomically add to an integer column and return the new value."""
        col = getattr(self.model, column)
        stmt = (
            update(self.model)
            .where(self.model.id == id)
            .values({column: col + amount})
            .returning(col)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.scalar_one_or_none()
