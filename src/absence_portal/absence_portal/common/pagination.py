from __future__ import annotations

import math
from dataclasses import dataclass

from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


@dataclass(frozen=True)
class Page:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_args(cls, page: object, limit: object) -> "Page":
        """Parse query-string values; bad or non-positive input falls back to defaults."""

        def _positive(value: object, default: int) -> int:
            try:
                number = int(value)  # type: ignore[arg-type]
            except (TypeError, ValueError):
                return default
            return number if number > 0 else default

        return cls(page=_positive(page, 1), limit=min(_positive(limit, DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE))

    def meta(self, total: int) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": int(total),
            "total_pages": math.ceil(total / self.limit) if self.limit else 0,
        }
