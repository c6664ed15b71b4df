from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, Generic, TypeVar, Optional, List, Type, AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import delete
from pydantic import BaseModel

from common.core.otel_axiom_exporter import trace_span
from common.db.scoped import get_session

EntityType = TypeVar("EntityType")
DomainModelType = TypeVar("DomainModelType", bound=BaseModel)

# Upper bound on ids per IN (...) clause
IN_QUERY_BATCH_SIZE = 10

# Left to server defaults when the domain model has no value yet
SERVER_MANAGED_COLUMNS = frozenset({"created_at", "updated_at"})


class BaseRepository(Generic[EntityType, DomainModelType]):
    """
    Base repository keyed by string ids.

    Sessions are acquired per operation through get_session(), which joins
    the enclosing transaction() when there is one. Passing db_session pins
    the repository to an explicit session whose lifecycle the caller owns.

    Example:
        repo = TenantRepository()
        tenant = await repo.get("uid-123")  # Acquires and releases a session
    """

    def __init__(
        self,
        entity_class: Type[EntityType],
        domain_class: Type[DomainModelType],
        db_session: Optional[AsyncSession] = None,
        key_column: str = "id",
    ):
        self.entity_class = entity_class
        self.domain_class = domain_class
        self.key_column = key_column
        self._explicit_session = db_session

    @asynccontextmanager
    async def _get_session(
        self, readonly: bool = False
    ) -> AsyncGenerator[AsyncSession, None]:
        if self._explicit_session is not None:
            yield self._explicit_session
        else:
            async with get_session(readonly=readonly) as session:
                yield session

    @property
    def _key(self):
        return getattr(self.entity_class, self.key_column)

    def _entity_to_domain(self, entity: EntityType) -> DomainModelType:
        """Convert database entity to domain model."""
        return self.domain_class.model_validate(entity)

    def _entities_to_domain(self, entities: List[EntityType]) -> List[DomainModelType]:
        return [self._entity_to_domain(entity) for entity in entities]

    def _filters(self, **equals: Any):
        return [getattr(self.entity_class, column) == value for column, value in equals.items()]

    @trace_span
    async def get(self, id: str) -> Optional[DomainModelType]:
        if not id:
            return None
        async with self._get_session(readonly=True) as session:
            result = await session.execute(select(self.entity_class).where(self._key == id))
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def get_by_ids(self, ids: List[str]) -> List[DomainModelType]:
        """Get multiple entities by id, querying in batches of IN_QUERY_BATCH_SIZE."""
        unique_ids = list(dict.fromkeys(i for i in ids if i))
        found: List[DomainModelType] = []
        async with self._get_session(readonly=True) as session:
            for start in range(0, len(unique_ids), IN_QUERY_BATCH_SIZE):
                batch = unique_ids[start : start + IN_QUERY_BATCH_SIZE]
                result = await session.execute(
                    select(self.entity_class).where(self._key.in_(batch))
                )
                found.extend(self._entities_to_domain(result.scalars().all()))
        return found

    @trace_span
    async def find(self, **equals: Any) -> List[DomainModelType]:
        """Return every entity whose columns equal the given values."""
        query = select(self.entity_class).where(*self._filters(**equals))
        async with self._get_session(readonly=True) as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def save(self, model: DomainModelType) -> DomainModelType:
        """Insert or replace the row for model's key."""
        data = {
            column: value.value if isinstance(value, Enum) else value
            for column, value in model.model_dump().items()
            if not (column in SERVER_MANAGED_COLUMNS and value is None)
        }
        async with self._get_session() as session:
            db_obj = await session.merge(self.entity_class(**data))
            await session.flush()
            await session.refresh(db_obj)
            return self._entity_to_domain(db_obj)

    @trace_span
    async def delete(self, id: str) -> bool:
        async with self._get_session() as session:
            result = await session.execute(delete(self.entity_class).where(self._key == id))
            await session.flush()
            return result.rowcount > 0

    @trace_span
    async def delete_where(self, **equals: Any) -> int:
        if not equals:
            raise ValueError("delete_where requires at least one filter")
        async with self._get_session() as session:
            result = await session.execute(
                delete(self.entity_class).where(*self._filters(**equals))
            )
            await session.flush()
            return result.rowcount
