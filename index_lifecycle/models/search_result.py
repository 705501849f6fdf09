from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SCROLL_ID_KEY = "_scroll_id"


class SearchItem(BaseModel):
    """One hit of a search. Inner hits carry no index of their own."""
    model_config = ConfigDict(populate_by_name=True)

    index: str = Field("", alias="_index")
    type: str = Field("", alias="_type")
    id: str = Field("", alias="_id")
    score: float = Field(0.0, alias="_score")
    source: Dict[str, Any] = Field(default_factory=dict, alias="_source")
    parent: str = Field("", alias="_parent")
    inner_hits: Dict[str, 'SearchResultPage'] = Field(default_factory=dict)
    inner_hit: bool = False

    @field_validator("score", mode="before")
    @classmethod
    def _missing_score_is_zero(cls, value):
        return 0.0 if value is None else value

    @field_validator("id", "parent", mode="before")
    @classmethod
    def _ids_are_strings(cls, value):
        return "" if value is None else str(value)

    @field_validator("source", mode="before")
    @classmethod
    def _missing_source_is_empty(cls, value):
        return value or {}

    @field_validator("inner_hits", mode="before")
    @classmethod
    def _parse_inner_hits(cls, value):
        if not value:
            return {}
        return {name: SearchResultPage.from_response(result, inner_hit=True)
                for name, result in value.items()
                if isinstance(result, SearchResultPage) or "hits" in result}

    @classmethod
    def from_hit(cls, hit: Dict[str, Any], inner_hit: bool = False) -> 'SearchItem':
        return cls.model_validate({**hit, "inner_hit": inner_hit})

    def has_all_required_information(self) -> bool:
        if not self.id:
            return False
        return self.inner_hit or bool(self.index)

    def to_json(self) -> Dict[str, Any]:
        return {
            "_index": self.index,
            "_type": self.type,
            "_id": self.id,
            "inner_hits": {name: page.to_json() for name, page in self.inner_hits.items()},
            "_score": self.score,
            "_source": self.source,
            "_parent": self.parent,
        }


class SearchResultPage(BaseModel):
    took: int = 0
    total: int = 0
    max_score: float = 0.0
    items: List[SearchItem] = Field(default_factory=list)
    aggregations: Dict[str, Any] = Field(default_factory=dict)
    scroll_id: str = ""
    # Hits returned by the engine before incomplete ones were dropped.
    hit_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.hit_count == 0 and len(self.items) == 0

    @classmethod
    def from_response(cls, data, inner_hit: bool = False) -> 'SearchResultPage':
        if isinstance(data, SearchResultPage):
            return data
        hits = data.get("hits") or {}
        total = hits.get("total", 0)
        # Newer engines report the total as {"value": n, "relation": "eq"}.
        if isinstance(total, dict):
            total = total.get("value", 0)
        raw_hits = hits.get("hits") or []
        items = [SearchItem.from_hit(hit, inner_hit=inner_hit) for hit in raw_hits]
        return cls(
            took=data.get("took") or 0,
            total=total or 0,
            max_score=hits.get("max_score") or 0.0,
            items=[item for item in items if item.has_all_required_information()],
            aggregations=data.get("aggregations") or {},
            scroll_id=data.get(SCROLL_ID_KEY) or "",
            hit_count=len(raw_hits),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "took": self.took,
            "max_score": self.max_score,
            "total": self.total,
            "hits": [item.to_json() for item in self.items],
            "aggregations": self.aggregations,
            SCROLL_ID_KEY: self.scroll_id,
        }


SearchItem.model_rebuild()

EMPTY_RESULT = SearchResultPage()


class SortOrder(str, Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


class SortMode(str, Enum):
    AVERAGE = "avg"
    MAXIMUM = "max"
    MINIMUM = "min"
    SUM = "sum"


@dataclass(frozen=True)
class Sort:
    field: str
    order: SortOrder = SortOrder.ASCENDING
    mode: SortMode = SortMode.AVERAGE
    nested_path: Optional[str] = None

    def has_all_required_information(self) -> bool:
        return bool(self.field)

    def to_json(self) -> Dict[str, Any]:
        inner: Dict[str, Any] = {"order": self.order.value, "mode": self.mode.value}
        if self.nested_path:
            inner["nested_path"] = self.nested_path
        return {self.field: inner}
