from __future__ import annotations

from .base import BaseSource
from .sources import (
    CareersFilipinoSource,
    HauSource,
    PhilscholarSource,
    TesdaSource,
    UnifastSource,
    UpdOicaSource,
)


def register_sources(*, max_listing_pages: int | None = None) -> list[BaseSource]:
    """Every known site, in the order their records are concatenated into a batch."""

    return [
        PhilscholarSource(max_listing_pages=max_listing_pages),
        TesdaSource(),
        UnifastSource(),
        HauSource(),
        UpdOicaSource(),
        CareersFilipinoSource(max_listing_pages=max_listing_pages),
    ]
