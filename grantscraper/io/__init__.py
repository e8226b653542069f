from __future__ import annotations

from .artifacts import write_json_atomic, write_parquet_atomic
from .corpus import CorpusGateway, InMemoryCorpusGateway, ParquetCorpusGateway

__all__ = [
    "CorpusGateway",
    "InMemoryCorpusGateway",
    "ParquetCorpusGateway",
    "write_json_atomic",
    "write_parquet_atomic",
]
