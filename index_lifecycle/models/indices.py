from typing import Iterable, List, Optional, Sequence, Tuple
import logging

from index_lifecycle.models.errors import MissingIndexListError
from index_lifecycle.models.index import IndexDescriptor
from index_lifecycle.models.mapping import Mapping
from index_lifecycle.models.search_engine import ALL_INDICES, SearchEngine
from index_lifecycle.models.settings_compiler import compile_index
from index_lifecycle.models.utils import as_name_list

logger = logging.getLogger(__name__)


class IndexManager:
    def __init__(self, engine: SearchEngine) -> None:
        self.engine = engine

    def create_indexes(self, descriptors: Sequence[IndexDescriptor], include_aliases: bool = True) -> List[str]:
        """
        Create every index that does not exist yet and return the names of those created. Indices that
        already exist are left alone. All descriptors are validated before anything is sent.
        """
        bodies = [(d.name, compile_index(d, self.engine.generation, include_aliases=include_aliases))
                  for d in descriptors]
        created = []
        for name, body in bodies:
            if self.engine.index_exists(name):
                logger.info(f"Index {name} already exists, not creating it")
                continue
            logger.info(f"Creating index {name}")
            self.engine.create_index(name, body)
            created.append(name)
        return created

    def delete_indexes(self, indices: Optional[Iterable[IndexDescriptor | str]] = None,
                       allow_delete_all: bool = False) -> List[str]:
        """
        Delete the named indices that exist and return their names. With no names, every index is deleted
        but only if allow_delete_all is set; otherwise MissingIndexListError is raised.
        """
        names = as_name_list([i.name if isinstance(i, IndexDescriptor) else i for i in indices or []])
        if not names:
            if not allow_delete_all:
                raise MissingIndexListError("index deletion")
            logger.warning("Deleting every index in the cluster")
            self.engine.delete_index(ALL_INDICES)
            return [ALL_INDICES]

        existing = []
        for name in names:
            if self.engine.index_exists(name):
                existing.append(name)
            else:
                logger.info(f"Index {name} does not exist, nothing to delete")
        if existing:
            logger.info(f"Deleting indices {existing}")
            self.engine.delete_index(existing)
        return existing

    def get_mappings(self, index: Optional[str | Iterable[str]] = None) -> List[Tuple[str, Mapping]]:
        response = self.engine.get_mapping(as_name_list(index) or None)
        return [(name, Mapping.from_engine_data(data.get("mappings") or {})) for name, data in response.items()]
