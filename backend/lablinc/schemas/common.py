"""Shared schema building blocks."""

from __future__ import annotations

import math

from pydantic import BaseModel


class Pagination(BaseModel):
    """Page metadata returned alongside list responses."""

    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> Pagination:
        return cls(
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit) if limit else 0,
        )
