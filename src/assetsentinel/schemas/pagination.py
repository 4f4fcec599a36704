"""Paginated list envelope: {data, total, page, page_size}."""

from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    data: list[T]
    total: int
    page: int
    page_size: int


def paginate(schema: type[BaseModel], items: Sequence, total: int, page: int, page_size: int) -> Page:
    """Wrap ORM rows in a Page, validated through their read schema."""
    return Page[schema](
        data=[schema.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )
