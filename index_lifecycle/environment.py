import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import yaml
from cerberus import Validator

from index_lifecycle.models.client_options import ClientOptions
from index_lifecycle.models.cluster import Cluster, NoClusterDefinedError
from index_lifecycle.models.documents import DocumentStore
from index_lifecycle.models.errors import MissingIndexListError
from index_lifecycle.models.index import IndexDescriptor
from index_lifecycle.models.inventory import DEFAULT_MAX_FAN_OUT, IndexInventory
from index_lifecycle.models.reindex import ReindexConfig, ReindexJob
from index_lifecycle.models.search_engine import ClusterSearchEngine, SearchEngine

logger = logging.getLogger(__name__)


SCHEMA = {
    "cluster": {"type": "dict", "required": False},
    "client_options": {"type": "dict", "required": False},
    "indices": {"type": "list", "required": False, "schema": {"type": "dict"}},
    "reindex": {"type": "dict", "required": False},
    "inventory": {
        "type": "dict",
        "required": False,
        "schema": {
            "max_fan_out": {"type": "integer", "required": False, "min": 1},
        }
    },
}


class Environment:
    cluster: Optional[Cluster] = None
    engine: Optional[SearchEngine] = None
    inventory: Optional[IndexInventory] = None
    documents: Optional[DocumentStore] = None
    client_options: Optional[ClientOptions] = None
    reindex_config: Optional[ReindexConfig] = None
    reindex_source_names: List[str]
    reindex_destination_names: List[str]
    indices: Dict[str, IndexDescriptor]
    config: Dict

    def __init__(self, config_file: Optional[Union[str, Path]] = None, config: Optional[Dict] = None,
                 engine: Optional[SearchEngine] = None):
        """
        Initialize the environment either from a configuration file or a direct configuration object.

        :param config_file: Path to the YAML config file.
        :param config: Direct configuration object, used when no config_file is given.
        :param engine: Search engine to use instead of one built from the `cluster` section.
        """
        if config_file:
            logger.info(f"Loading config file: {config_file}")
            with open(config_file) as f:
                self.config = yaml.safe_load(f)
                logger.info(f"Loaded config file: {self.config}")
        elif isinstance(config, Dict):
            self.config = config
            logger.info(f"Using provided config: {self.config}")
        else:
            raise ValueError("Either config or config_file must be provided.")

        v = Validator(SCHEMA)
        if not v.validate(self.config):
            logger.error(f"Config file validation errors: {v.errors}")
            raise ValueError("Invalid config file", v.errors)

        if 'client_options' in self.config:
            self.client_options = ClientOptions(self.config["client_options"])

        if engine is not None:
            self.engine = engine
        elif 'cluster' in self.config:
            self.cluster = Cluster(config=self.config["cluster"], client_options=self.client_options)
            self.engine = ClusterSearchEngine(self.cluster)
            logger.info(f"Cluster initialized: {self.cluster.endpoint}")
        else:
            logger.info("No cluster provided")

        max_fan_out = self.config.get("inventory", {}).get("max_fan_out", DEFAULT_MAX_FAN_OUT)
        if self.engine is not None:
            self.inventory = IndexInventory(self.engine, max_fan_out=max_fan_out)
            self.documents = DocumentStore(self.engine, inventory=self.inventory)

        self.indices = {}
        for index_config in self.config.get("indices", []):
            descriptor = IndexDescriptor.from_config(index_config)
            if descriptor.name in self.indices:
                raise ValueError("Invalid config file", f"Index {descriptor.name} is defined more than once")
            self.indices[descriptor.name] = descriptor
        logger.info(f"Index descriptors loaded: {list(self.indices.keys())}")

        self.reindex_source_names = []
        self.reindex_destination_names = []
        if 'reindex' in self.config:
            self.reindex_config, self.reindex_source_names, self.reindex_destination_names = \
                ReindexConfig.from_config(self.config["reindex"])
            logger.info(f"Reindex configured from {self.reindex_source_names} to {self.reindex_destination_names}")

    def require_engine(self) -> SearchEngine:
        if self.engine is None:
            raise NoClusterDefinedError()
        return self.engine

    def descriptors(self, names: Optional[Sequence[str]] = None) -> List[IndexDescriptor]:
        """Look up index descriptors by name. With no names, every configured descriptor is returned."""
        if not names:
            return list(self.indices.values())
        unknown = [name for name in names if name not in self.indices]
        if unknown:
            raise ValueError(f"No index descriptor is configured for: {', '.join(unknown)}")
        return [self.indices[name] for name in names]

    def reindex_jobs(self) -> List[ReindexJob]:
        if not self.reindex_source_names or not self.reindex_destination_names:
            raise MissingIndexListError("reindex")
        return ReindexJob.from_index_lists(self.descriptors(self.reindex_source_names),
                                           self.descriptors(self.reindex_destination_names))
