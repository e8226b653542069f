from __future__ import annotations

from .careers_filipino import CareersFilipinoSource
from .hau import HauSource
from .philscholar import PhilscholarSource
from .tesda import TesdaSource
from .unifast import UnifastSource
from .upd_oica import UpdOicaSource

__all__ = [
    "CareersFilipinoSource",
    "HauSource",
    "PhilscholarSource",
    "TesdaSource",
    "UnifastSource",
    "UpdOicaSource",
]
