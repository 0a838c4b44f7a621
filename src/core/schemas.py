"""
Pydantic schemas for the structured records exchanged with the LLM.
"""
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator


def _as_text_list(value: Any) -> List[str]:
    # A mapping is not a list of facts, its keys would read as entries
    if value is None or isinstance(value, Mapping):
        return []
    if isinstance(value, (str, int, float)):
        value = [value]
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


class ExtractedFacts(BaseModel):
    """
    Verifiable facts about one cluster. Array fields are never null.
    """
    vendor: str = Field(..., min_length=1)
    product: str = Field(..., min_length=1)
    version: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    changes: List[str] = Field(default_factory=list)
    prices: List[str] = Field(default_factory=list)
    limits: List[str] = Field(default_factory=list)
    date: str = ""
    citations: List[str] = Field(default_factory=list)

    @field_validator("features", "changes", "prices", "limits", "citations", mode="before")
    @classmethod
    def _default_lists(cls, value: Any) -> List[str]:
        return _as_text_list(value)

    @field_validator("vendor", "product", mode="before")
    @classmethod
    def _strip_required(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("version", "title", "summary", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("date", mode="before")
    @classmethod
    def _date_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


class ComputedDeltas(BaseModel):
    """
    Difference between current and prior facts for the same vendor/product.
    `summary` is authoritative; the other fields are layout hints.
    """
    summary: str
    context_window: Optional[str] = None
    price: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    changes: List[str] = Field(default_factory=list)
