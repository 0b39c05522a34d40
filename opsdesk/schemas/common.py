from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from opsdesk.core.datetime_utils import to_naive_utc

T = TypeVar("T")


class CamelModel(BaseModel):
    """JSON in and out uses camelCase keys; Python attributes stay snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class DataResponse(BaseModel, Generic[T]):
    """Success envelope: {"data": ...}."""

    data: T


def naive_utc(value: datetime | None) -> datetime | None:
    """Validator helper: store incoming timestamps as naive UTC."""
    return to_naive_utc(value) if value is not None else None
