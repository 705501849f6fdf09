from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
import logging

from index_lifecycle.models.search_engine import SearchEngine
from index_lifecycle.models.utils import as_name_list

logger = logging.getLogger(__name__)

DEFAULT_MAX_FAN_OUT = 1000
DEFAULT_MAPPING_TYPE = "_default_"


class FanOutLimitExceededError(ValueError):
    def __init__(self, limit: int):
        super().__init__(f"Expanding the request would target more than {limit} index/type pairs. "
                         "Name the indices or types explicitly.")
        self.limit = limit


@dataclass(frozen=True)
class IndexTarget:
    index: str
    doc_type: str


class IndexInventory:
    """Read-only view of the indices, aliases and document types present in the engine."""

    def __init__(self, engine: SearchEngine, max_fan_out: int = DEFAULT_MAX_FAN_OUT) -> None:
        self.engine = engine
        self.max_fan_out = max_fan_out

    def list_indices_and_aliases(self) -> Dict[str, List[str]]:
        indices: Dict[str, List[str]] = {row["index"]: [] for row in self.engine.cat_indices()}
        for row in self.engine.cat_aliases():
            indices.setdefault(row["index"], []).append(row["alias"])
        return indices

    def list_index_names(self) -> List[str]:
        return list(self.list_indices_and_aliases().keys())

    def get_all_types(self, index: Optional[str | Iterable[str]] = None) -> List[str]:
        """
        Document types registered under the given indices (or aliases), or under every index when none
        are named.
        """
        response = self.engine.get_mapping(as_name_list(index) or None)
        types: List[str] = []
        for index_data in response.values():
            for type_name in (index_data.get("mappings") or {}):
                if type_name != DEFAULT_MAPPING_TYPE and type_name not in types:
                    types.append(type_name)
        return types

    def supply_index_and_type(self, index: Optional[str | Iterable[str]] = None,
                              doc_type: Optional[str | Iterable[str]] = None) -> List[IndexTarget]:
        """
        Expand possibly missing index and type arguments into concrete index/type pairs. A missing index
        means every index; a missing type means every type of that index. Raises FanOutLimitExceededError
        as soon as the expansion passes max_fan_out.
        """
        indices = as_name_list(index) or self.list_index_names()
        explicit_types = as_name_list(doc_type)

        targets: List[IndexTarget] = []
        for index_name in indices:
            for type_name in explicit_types or self.get_all_types(index_name):
                targets.append(IndexTarget(index=index_name, doc_type=type_name))
                if len(targets) > self.max_fan_out:
                    raise FanOutLimitExceededError(self.max_fan_out)
        logger.debug(f"Expanded index={index} type={doc_type} into {len(targets)} targets")
        return targets
