"""Explicit pagination/sorting options for list queries.

``PageQuery`` replaces free-form option dicts: it validates the values
once, applies defaults from settings, and translates itself into the
Django ``order_by`` / slice shape used by repositories.
"""

from __future__ import annotations

from typing import ClassVar, FrozenSet, List, Literal

from django.conf import settings
from django.db.models import QuerySet
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _default_limit() -> int:
    return settings.API_PAGE_DEFAULT_LIMIT


class PageQuery(BaseModel):
    """Immutable pagination + sorting request.

    Subclasses narrow ``SORTABLE_FIELDS`` to the columns their list
    endpoint can order by.  ``limit`` above ``API_PAGE_MAX_LIMIT`` is
    clamped rather than rejected.
    """

    model_config = ConfigDict(frozen=True)

    SORTABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"created_at", "updated_at"})
    DEFAULT_SORT: ClassVar[str] = "created_at"

    page: int = 1
    limit: int = Field(default_factory=_default_limit)
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("page")
    @classmethod
    def page_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Page must be at least 1.")
        return v

    @field_validator("limit")
    @classmethod
    def limit_within_bounds(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Limit must be at least 1.")
        return min(v, settings.API_PAGE_MAX_LIMIT)

    @field_validator("sort_by")
    @classmethod
    def sort_by_must_be_allowed(cls, v: str) -> str:
        if not v:
            return cls.DEFAULT_SORT
        if v not in cls.SORTABLE_FIELDS:
            allowed = ", ".join(sorted(cls.SORTABLE_FIELDS))
            raise ValueError(f"Cannot sort by '{v}'. Allowed: {allowed}.")
        return v

    @field_validator("sort_order", mode="before")
    @classmethod
    def normalise_sort_order(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def ordering(self) -> List[str]:
        """``order_by`` arguments, with ``id`` as a stable tie-breaker."""
        prefix = "-" if self.sort_order == "desc" else ""
        return [f"{prefix}{self.sort_by}", f"{prefix}id"]

    def apply(self, queryset: QuerySet) -> QuerySet:
        """Order and slice *queryset* to the requested page."""
        return queryset.order_by(*self.ordering())[
            self.offset : self.offset + self.limit
        ]
