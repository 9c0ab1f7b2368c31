"""Request parameter validation and page arithmetic shared by item endpoints."""

from __future__ import annotations

from typing import Iterable, Sequence, TypeVar

from partsearch.schemas import Pagination
from partsearch.services.errors import ValidationError
from partsearch.settings import SearchLimits

T = TypeVar("T")


def validate_pagination(page: int, page_size: int, limits: SearchLimits) -> None:
    """Raise ValidationError unless page >= 1 and 1 <= page_size <= max."""
    if page < 1:
        raise ValidationError("page", "Page must be 1 or greater.")
    if page_size < 1 or page_size > limits.max_page_size:
        raise ValidationError(
            "page_size", f"Page size must be between 1 and {limits.max_page_size}."
        )


def require_positive_id(field: str, value: int | None) -> int | None:
    """Pass through None; reject ids <= 0."""
    if value is not None and value <= 0:
        raise ValidationError(field, f"Invalid {field}. Must be a positive integer.")
    return value


def parse_model_ids(values: Iterable[str | int] | str | None) -> tuple[int, ...]:
    """Parse model ids from comma lists and/or repeated parameters.

    Non-numeric and non-positive entries are dropped; order of first
    appearance is kept.
    """
    if values is None:
        return ()
    if isinstance(values, (str, int)):
        values = [values]

    ids: list[int] = []
    for value in values:
        for part in str(value).split(","):
            part = part.strip()
            if not part.isdigit():
                continue
            model_id = int(part)
            if model_id > 0 and model_id not in ids:
                ids.append(model_id)
    return tuple(ids)


def parse_model_ids_strict(values: Iterable[str | int] | str | None) -> tuple[int, ...]:
    """Like parse_model_ids, but any non-numeric or non-positive entry is a
    ValidationError. Empty list segments ("1,,2") are skipped."""
    if values is None:
        return ()
    if isinstance(values, (str, int)):
        values = [values]

    ids: list[int] = []
    for value in values:
        for part in str(value).split(","):
            part = part.strip()
            if not part:
                continue
            if not part.isdigit() or int(part) <= 0:
                raise ValidationError(
                    "model_ids", "Invalid model_ids. Each entry must be a positive integer."
                )
            model_id = int(part)
            if model_id not in ids:
                ids.append(model_id)
    return tuple(ids)


def resolve_page_size(page_size: int | None, limits: SearchLimits) -> int:
    """Fill in the configured default when the request leaves page_size out."""
    return limits.default_page_size if page_size is None else page_size


def total_pages(total_items: int, page_size: int) -> int:
    return (total_items + page_size - 1) // page_size if total_items else 0


def paginate(items: Sequence[T], page: int, page_size: int) -> list[T]:
    offset = (page - 1) * page_size
    return list(items[offset : offset + page_size])


def build_pagination(page: int, page_size: int, total_items: int) -> Pagination:
    return Pagination(
        current_page=page,
        page_size=page_size,
        total_items=total_items,
        total_pages=total_pages(total_items, page_size),
        has_more=page * page_size < total_items,
    )
