from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import logging

import requests
from cerberus import Validator

from index_lifecycle.models.aliases import AliasSwap, AliasSwitchboard
from index_lifecycle.models.bulk import BulkIndex, BulkWriter
from index_lifecycle.models.errors import IncompleteDescriptorError, MissingIndexListError
from index_lifecycle.models.index import IndexDescriptor
from index_lifecycle.models.indices import IndexManager
from index_lifecycle.models.schema_tools import list_schema, scroll_duration_schema
from index_lifecycle.models.scroll import DEFAULT_SCROLL_DURATION, ScrollCursor, validate_scroll_duration
from index_lifecycle.models.search_engine import SearchEngine

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 500
DEFAULT_MAX_WORKERS = 1


class ReindexStage(str, Enum):
    CREATE_NEW_INDEXES = "create_new_indexes"
    TRANSFER_DATA = "transfer_data"
    UPDATE_ALIASES = "update_aliases"
    REMOVE_OLD_INDEXES = "remove_old_indexes"


SCHEMA = {
    "reindex": {
        "type": "dict",
        "schema": {
            "source": list_schema(required=True),
            "destination": list_schema(required=True),
            "scroll": scroll_duration_schema(required=False),
            "page_size": {"type": "integer", "required": False, "min": 1},
            "max_workers": {"type": "integer", "required": False, "min": 1},
            **{stage.value: {"type": "boolean", "required": False} for stage in ReindexStage},
        }
    }
}


@dataclass(frozen=True)
class ReindexJob:
    """
    One source index copied into one destination index. The scroll query defaults to the source's own,
    never the destination's.
    """
    source: IndexDescriptor
    destination: IndexDescriptor
    scroll_query: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not self.source.name or not self.destination.name:
            raise IncompleteDescriptorError(self, "a reindex job needs a source and a destination index")

    def scroll_body(self, page_size: int) -> Dict[str, Any]:
        body = dict(self.scroll_query) if self.scroll_query is not None else self.source.scroll_body()
        body.setdefault("size", page_size)
        return body

    @classmethod
    def from_index_lists(cls, sources: Sequence[IndexDescriptor],
                         destinations: Sequence[IndexDescriptor]) -> List['ReindexJob']:
        """Pair sources and destinations by position."""
        if not sources or not destinations:
            raise MissingIndexListError("reindex")
        if len(sources) != len(destinations):
            raise ValueError("Reindex needs as many destination indices as source indices",
                             [s.name for s in sources], [d.name for d in destinations])
        return [cls(source=s, destination=d) for s, d in zip(sources, destinations)]


@dataclass
class ReindexConfig:
    create_new_indexes: bool = False
    transfer_data: bool = False
    update_aliases: bool = False
    remove_old_indexes: bool = False
    scroll: str = DEFAULT_SCROLL_DURATION
    page_size: int = DEFAULT_PAGE_SIZE
    max_workers: int = DEFAULT_MAX_WORKERS

    def is_enabled(self, stage: ReindexStage) -> bool:
        return getattr(self, stage.value)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> Tuple['ReindexConfig', List[str], List[str]]:
        """Returns the config together with the source and destination index names."""
        v = Validator(SCHEMA)
        if not v.validate({"reindex": config}):
            raise ValueError("Invalid config file for reindex", v.errors)
        reindex_config = cls(
            scroll=config.get("scroll", DEFAULT_SCROLL_DURATION),
            page_size=config.get("page_size", DEFAULT_PAGE_SIZE),
            max_workers=config.get("max_workers", DEFAULT_MAX_WORKERS),
            **{stage.value: config.get(stage.value, False) for stage in ReindexStage},
        )
        return reindex_config, list(config["source"]), list(config["destination"])


@dataclass
class TransferResult:
    source: str
    destination: str
    pages: int = 0
    documents: int = 0
    failed_items: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class StageResult:
    stage: ReindexStage
    value: Any = None


@dataclass
class ReindexReport:
    completed: List[StageResult] = field(default_factory=list)
    skipped: List[ReindexStage] = field(default_factory=list)

    def result_for(self, stage: ReindexStage) -> Optional[StageResult]:
        return next((r for r in self.completed if r.stage == stage), None)

    @property
    def completed_stages(self) -> List[ReindexStage]:
        return [r.stage for r in self.completed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed": {r.stage.value: _describe(r.value) for r in self.completed},
            "skipped": [s.value for s in self.skipped],
        }


def _describe(value: Any) -> Any:
    if isinstance(value, list):
        return [_describe(v) for v in value]
    if isinstance(value, TransferResult):
        return {"source": value.source, "destination": value.destination, "pages": value.pages,
                "documents": value.documents, "failed_items": len(value.failed_items)}
    if isinstance(value, AliasSwap):
        return {"actions": value.actions, "skipped_indices": value.skipped_indices}
    return value


class ReindexStageError(Exception):
    def __init__(self, stage: ReindexStage, report: ReindexReport, cause: Exception):
        super().__init__(f"Reindex stage {stage.value} failed: {cause}")
        self.stage = stage
        self.report = report
        self.cause = cause


class ReindexOrchestrator:
    """
    Runs the enabled stages of a reindex, in order: create the new indices, copy the documents, move the
    aliases, delete the old indices. The first failing stage stops the run with a ReindexStageError
    whose report lists what already completed. Nothing is rolled back, so a failed run can be finished
    by re-running the remaining stages.
    """

    def __init__(self, engine: SearchEngine, config: ReindexConfig) -> None:
        self.engine = engine
        self.config = config
        self.indices = IndexManager(engine)
        self.writer = BulkWriter(engine)
        self.switchboard = AliasSwitchboard(engine)
        self.stages: List[Tuple[ReindexStage, Callable[[List[ReindexJob]], Any]]] = [
            (ReindexStage.CREATE_NEW_INDEXES, self.create_new_indexes),
            (ReindexStage.TRANSFER_DATA, self.transfer_data),
            (ReindexStage.UPDATE_ALIASES, self.update_aliases),
            (ReindexStage.REMOVE_OLD_INDEXES, self.remove_old_indexes),
        ]

    def _validate(self, jobs: List[ReindexJob]) -> None:
        if not jobs:
            raise MissingIndexListError("reindex")
        if self.config.is_enabled(ReindexStage.CREATE_NEW_INDEXES):
            for job in jobs:
                job.destination.validate()
        if self.config.is_enabled(ReindexStage.TRANSFER_DATA):
            validate_scroll_duration(self.config.scroll)

    def run(self, jobs: Sequence[ReindexJob]) -> ReindexReport:
        jobs = list(jobs)
        self._validate(jobs)
        report = ReindexReport()
        for stage, run_stage in self.stages:
            if not self.config.is_enabled(stage):
                logger.debug(f"Skipping reindex stage {stage.value}")
                report.skipped.append(stage)
                continue
            logger.info(f"Starting reindex stage {stage.value}")
            try:
                value = run_stage(jobs)
            except (requests.exceptions.RequestException, IncompleteDescriptorError) as e:
                logger.error(f"Reindex stage {stage.value} failed: {e}")
                raise ReindexStageError(stage, report, e) from e
            report.completed.append(StageResult(stage=stage, value=value))
        return report

    def create_new_indexes(self, jobs: List[ReindexJob]) -> List[str]:
        # Aliases are attached by the alias stage at cutover.
        return self.indices.create_indexes([job.destination for job in jobs], include_aliases=False)

    def transfer(self, job: ReindexJob) -> TransferResult:
        result = TransferResult(source=job.source.name, destination=job.destination.name)
        with ScrollCursor(self.engine, index=[job.source.name], body=job.scroll_body(self.config.page_size),
                          scroll=self.config.scroll) as cursor:
            for page in cursor:
                operations = [BulkIndex.from_search_item(item, job.destination.name) for item in page.items]
                bulk_result = self.writer.write(operations)
                result.pages += 1
                result.documents += len(operations)
                result.failed_items.extend(bulk_result.failed_items)
        logger.info(f"Copied {result.documents} documents from {result.source} to {result.destination}, "
                    f"{len(result.failed_items)} failed")
        return result

    def transfer_data(self, jobs: List[ReindexJob]) -> List[TransferResult]:
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = [executor.submit(self.transfer, job) for job in jobs]
            return [future.result() for future in futures]

    def update_aliases(self, jobs: List[ReindexJob]) -> AliasSwap:
        return self.switchboard.swap([job.source for job in jobs], [job.destination for job in jobs])

    def remove_old_indexes(self, jobs: List[ReindexJob]) -> List[str]:
        return self.indices.delete_indexes([job.source for job in jobs])
