import logging
from typing import Dict, List, Optional, Sequence

from index_lifecycle.middleware.error_handler import handle_errors
from index_lifecycle.middleware.json_support import support_json_return
from index_lifecycle.models.aliases import AliasSwitchboard
from index_lifecycle.models.command_result import CommandResult
from index_lifecycle.models.index import IndexDescriptor
from index_lifecycle.models.indices import IndexManager
from index_lifecycle.models.inventory import IndexInventory
from index_lifecycle.models.search_engine import SearchEngine
from index_lifecycle.models.settings_compiler import compile_index
from index_lifecycle.models.utils import ExitCode
from index_lifecycle.models.version import EngineGeneration

logger = logging.getLogger(__name__)


@support_json_return()
@handle_errors("indices")
def list_indices(inventory: IndexInventory) -> CommandResult[Dict[str, List[str]]]:
    return CommandResult.ok(inventory.list_indices_and_aliases())


@support_json_return()
@handle_errors("indices")
def list_types(inventory: IndexInventory, index: Optional[List[str]] = None) -> CommandResult[List[str]]:
    return CommandResult.ok(inventory.get_all_types(index))


@support_json_return()
@handle_errors("indices")
def compile_descriptors(generation: EngineGeneration, descriptors: Sequence[IndexDescriptor],
                        include_aliases: bool = True) -> CommandResult[Dict]:
    return CommandResult.ok({
        d.name: compile_index(d, generation, include_aliases=include_aliases) for d in descriptors
    })


@handle_errors("indices",
               on_success=lambda created: (ExitCode.SUCCESS, f"Created indices: {', '.join(created)}"
                                           if created else "All indices already exist, nothing created"))
def create(engine: SearchEngine, descriptors: Sequence[IndexDescriptor],
           include_aliases: bool = True) -> CommandResult[List[str]]:
    logger.info(f"Creating indices {[d.name for d in descriptors]} with {include_aliases=}")
    return CommandResult.ok(
        IndexManager(engine).create_indexes(descriptors, include_aliases=include_aliases))


@handle_errors("indices",
               on_success=lambda deleted: (ExitCode.SUCCESS, f"Deleted indices: {', '.join(deleted)}"
                                           if deleted else "None of the indices exist, nothing deleted"))
def delete(engine: SearchEngine, names: Sequence[str], allow_delete_all: bool = False) -> CommandResult[List[str]]:
    logger.info(f"Deleting indices {names} with {allow_delete_all=}")
    return CommandResult.ok(
        IndexManager(engine).delete_indexes(names, allow_delete_all=allow_delete_all))


@support_json_return()
@handle_errors("indices")
def mappings(engine: SearchEngine, index: Optional[List[str]] = None) -> CommandResult[Dict]:
    return CommandResult.ok({
        name: mapping.to_json(engine.generation) for name, mapping in IndexManager(engine).get_mappings(index)
    })


@handle_errors("aliases",
               on_success=lambda swap: (ExitCode.SUCCESS,
                                        f"Applied {len(swap.actions)} alias actions"
                                        + (f", skipped missing indices: {', '.join(swap.skipped_indices)}"
                                           if swap.skipped_indices else "")))
def swap_aliases(engine: SearchEngine, old: Sequence[IndexDescriptor],
                 new: Sequence[IndexDescriptor]) -> CommandResult:
    return CommandResult.ok(AliasSwitchboard(engine).swap(old, new))
