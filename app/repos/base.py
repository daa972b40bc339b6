from typing import Any, Generic, TypeVar, cast

from fastapi_async_sqlalchemy import db
from sqlalchemy import ScalarResult, func, select
from sqlalchemy.sql import Executable
from sqlalchemy.sql.selectable import Select

from app.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepo(Generic[ModelType]):
    """Repository over the request-scoped session of fastapi_async_sqlalchemy."""

    def __init__(self, model: type[ModelType]) -> None:
        self._model = model
        self._db = db

    @property
    def base_stmt(self) -> Select[tuple[ModelType]]:
        return select(self._model)

    async def get(self, id: Any) -> ModelType | None:
        return cast(ModelType | None, await self._db.session.get(self._model, id))

    async def execute(self, query: Select[tuple[ModelType]]) -> ScalarResult[ModelType]:
        """Run a select of this model and return its scalars."""
        result = await self._db.session.execute(query)
        return cast(ScalarResult[ModelType], result.scalars())

    async def first(self, query: Select[tuple[ModelType]]) -> ModelType | None:
        return (await self.execute(query.limit(1))).first()

    async def scalar(self, query: Executable) -> Any:
        return await self._db.session.scalar(query)

    async def count(self) -> int:
        """Number of rows in this model's table."""
        return int(await self.scalar(select(func.count()).select_from(self._model)) or 0)

    async def add(self, model: ModelType, commit: bool = False) -> None:
        self._db.session.add(model)
        if commit:
            await self.commit()
        else:
            await self.flush()

    async def commit(self) -> None:
        await self._db.session.commit()

    async def flush(self) -> None:
        await self._db.session.flush()
