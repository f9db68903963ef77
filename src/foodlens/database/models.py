"""Data models for the database layer."""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from foodlens.utils.constants import DEFAULT_FAVORITE_SOURCE

logger = logging.getLogger(__name__)


class RowState(str, Enum):
    """Lifecycle of a synced row: active → pending_delete → purged."""

    ACTIVE = "active"
    PENDING_DELETE = "pending_delete"
    PURGED = "purged"

    @classmethod
    def from_flags(cls, deleted) -> "RowState":
        return cls.PENDING_DELETE if deleted else cls.ACTIVE


def decode_json_column(text, column: str = "json") -> dict:
    """Decode a JSON text column into a dict, {} when empty or malformed."""
    if not text:
        return {}
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        logger.warning(f"Ignoring malformed JSON in column {column}")
        return {}
    return value if isinstance(value, dict) else {}


def encode_json_column(value) -> str:
    """Serialize a structured value for a JSON text column."""
    if isinstance(value, str):
        return value
    return json.dumps(value or {})


@dataclass
class PantryItem:
    id: str = ""
    name: str = ""
    upc: Optional[str] = None
    brand: Optional[str] = None
    qty: float = 0
    unit: Optional[str] = None
    per_serving: dict = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    user_id: Optional[str] = None
    dirty: int = 0
    deleted: int = 0

    @classmethod
    def from_row(cls, row) -> "PantryItem":
        data = dict(row)
        data["per_serving"] = decode_json_column(
            data.get("per_serving"), "per_serving"
        )
        return cls(**data)

    @property
    def state(self) -> RowState:
        return RowState.from_flags(self.deleted)

    @property
    def is_dirty(self) -> bool:
        return bool(self.dirty)

    def to_wire(self) -> dict:
        """Shape sent to the pantry_push procedure."""
        return {
            "id": self.id,
            "upc": self.upc,
            "name": self.name,
            "brand": self.brand,
            "qty": self.qty,
            "unit": self.unit,
            "per_serving": dict(self.per_serving or {}),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "deleted": bool(self.deleted),
        }


@dataclass
class MealFavorite:
    user_id: str = ""
    meal_id: str = ""
    source: str = DEFAULT_FAVORITE_SOURCE
    title: str = ""
    thumb: str = ""
    detail: dict = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    dirty: int = 0
    deleted: int = 0

    @classmethod
    def from_row(cls, row) -> "MealFavorite":
        data = dict(row)
        data["detail"] = decode_json_column(data.pop("json", None))
        data["title"] = data.get("title") or ""
        data["thumb"] = data.get("thumb") or ""
        return cls(**data)

    @property
    def key(self) -> tuple[str, str]:
        return (self.meal_id, self.source)

    @property
    def state(self) -> RowState:
        return RowState.from_flags(self.deleted)

    @property
    def is_dirty(self) -> bool:
        return bool(self.dirty)

    def to_wire(self) -> dict:
        """Shape sent to the favs_push procedure."""
        return {
            "meal_id": self.meal_id,
            "source": self.source or DEFAULT_FAVORITE_SOURCE,
            "title": self.title or "",
            "thumb": self.thumb or "",
            "json": dict(self.detail or {}),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "deleted": bool(self.deleted),
        }


@dataclass
class CachedLookup:
    upc: str = ""
    record: dict = field(default_factory=dict)
    fetched_at: Optional[str] = None


@dataclass
class MergeResult:
    """Outcome of PantryRepository.add_or_merge."""

    id: str
    merged: bool
    qty: float
