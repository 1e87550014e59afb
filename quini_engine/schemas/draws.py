"""Pydantic schemas for historical draws."""

from datetime import date
from enum import Enum

from pydantic import BaseModel


class Modality(str, Enum):
    TRADICIONAL = "tradicional"
    SEGUNDA = "segunda"
    REVANCHA = "revancha"
    SIEMPRE_SALE = "siempreSale"


class HistoricalDraw(BaseModel):
    """One published draw as delivered by the ingestion collaborator."""

    model_config = {"frozen": True}

    draw_number: int
    draw_date: date
    numbers: list[int]
    modality: Modality = Modality.TRADICIONAL
    extra: dict | None = None  # prize pool / winners metadata, never analysed


class NormalizedDraw(BaseModel):
    model_config = {"frozen": True}

    draw_number: int
    draw_date: date
    modality: Modality
    numbers: tuple[int, ...]
    total: int
    even_count: int
    odd_count: int
    spacing: tuple[int, ...]
    amplitude: int


class DrawsRequest(BaseModel):
    draws: list[HistoricalDraw]
