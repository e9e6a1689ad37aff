"""Base schema class with ORM conversion."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict


class SchemaBase(BaseModel):
    """Base class for read models built from SQLAlchemy rows."""

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_orm(cls, obj: Any) -> Self:
        """Create a schema instance from a SQLAlchemy model."""
        return cls.model_validate(obj)

    @classmethod
    def from_orm_list(cls, objs: list[Any]) -> list[Self]:
        return [cls.from_orm(obj) for obj in objs]
