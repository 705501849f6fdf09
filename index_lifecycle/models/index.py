from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple
import copy
import logging

from cerberus import Validator

from index_lifecycle.models.analysis import Analyzer, analyzers_from_config
from index_lifecycle.models.errors import IncompleteDescriptorError
from index_lifecycle.models.mapping import Mapping

logger = logging.getLogger(__name__)

DEFAULT_NUMBER_OF_SHARDS = 5
DEFAULT_NUMBER_OF_REPLICAS = 1


def match_all_query() -> Dict[str, Any]:
    return {"query": {"match_all": {}}}


SCHEMA = {
    "index": {
        "type": "dict",
        "schema": {
            "name": {"type": "string", "required": True, "empty": False},
            "number_of_shards": {"type": "integer", "required": False, "min": 1},
            "number_of_replicas": {"type": "integer", "required": False, "min": 0},
            "index_alias": {"type": "string", "required": False},
            "search_alias": {"type": "string", "required": False},
            "scroll_query": {"type": "dict", "required": False},
            "analysis": {"type": "dict", "required": False},
            "mapping": {"type": "dict", "required": True, "empty": False},
        }
    }
}


@dataclass(frozen=True)
class IndexDescriptor:
    """
    Everything needed to create one generation of an index, and to find it again through its aliases.

    The number of shards is fixed once the index exists. The scroll query is what gets copied when this
    index is the source of a reindex.
    """
    name: str
    mapping: Mapping = field(default_factory=Mapping)
    number_of_shards: int = DEFAULT_NUMBER_OF_SHARDS
    number_of_replicas: int = DEFAULT_NUMBER_OF_REPLICAS
    index_alias: str = ""
    search_alias: str = ""
    analyzers: Tuple[Analyzer, ...] = ()
    scroll_query: Dict[str, Any] = field(default_factory=match_all_query)

    def has_all_required_information(self) -> bool:
        return bool(self.name) and self.mapping.has_all_required_information()

    def validate(self) -> None:
        if not self.has_all_required_information():
            raise IncompleteDescriptorError(self.name or self, "index needs a name and a complete mapping")

    @property
    def aliases(self) -> List[str]:
        return [alias for alias in (self.index_alias, self.search_alias) if alias]

    def scroll_body(self) -> Dict[str, Any]:
        return copy.deepcopy(self.scroll_query)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'IndexDescriptor':
        v = Validator(SCHEMA)
        if not v.validate({"index": config}):
            raise ValueError("Invalid config file for index", v.errors)
        descriptor = cls(
            name=config["name"],
            mapping=Mapping.from_config(config["mapping"]),
            number_of_shards=config.get("number_of_shards", DEFAULT_NUMBER_OF_SHARDS),
            number_of_replicas=config.get("number_of_replicas", DEFAULT_NUMBER_OF_REPLICAS),
            index_alias=config.get("index_alias", ""),
            search_alias=config.get("search_alias", ""),
            analyzers=tuple(analyzers_from_config(config.get("analysis"))),
            scroll_query=config.get("scroll_query") or match_all_query(),
        )
        logger.debug(f"Index descriptor {descriptor.name} loaded with types {descriptor.mapping.type_names}")
        return descriptor
