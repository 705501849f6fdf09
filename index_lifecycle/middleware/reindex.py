import logging
from typing import Dict, Sequence

from index_lifecycle.middleware.error_handler import handle_errors
from index_lifecycle.middleware.json_support import support_json_return
from index_lifecycle.models.command_result import CommandResult
from index_lifecycle.models.reindex import ReindexConfig, ReindexJob, ReindexOrchestrator, ReindexStageError
from index_lifecycle.models.search_engine import SearchEngine

logger = logging.getLogger(__name__)


@support_json_return()
@handle_errors("reindex")
def run(engine: SearchEngine, config: ReindexConfig, jobs: Sequence[ReindexJob]) -> CommandResult[Dict | str]:
    logger.info(f"Running reindex of {[(j.source.name, j.destination.name) for j in jobs]} with {config}")
    try:
        report = ReindexOrchestrator(engine, config).run(jobs)
    except ReindexStageError as e:
        completed = ", ".join(s.value for s in e.report.completed_stages) or "none"
        return CommandResult.failed(f"{e}\nCompleted stages: {completed}")
    return CommandResult.ok(report.to_dict())
