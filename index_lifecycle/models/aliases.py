from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import logging

from index_lifecycle.models.errors import IncompleteDescriptorError, MissingIndexListError
from index_lifecycle.models.index import IndexDescriptor
from index_lifecycle.models.search_engine import SearchEngine

logger = logging.getLogger(__name__)


def alias_action(action: str, index: str, alias: str) -> Dict[str, Any]:
    return {action: {"index": index, "alias": alias}}


@dataclass
class AliasSwap:
    actions: List[Dict[str, Any]] = field(default_factory=list)
    skipped_indices: List[str] = field(default_factory=list)
    response: Optional[Dict[str, Any]] = None

    @property
    def applied(self) -> bool:
        return self.response is not None


class AliasSwitchboard:
    """
    Moves the index and search aliases from one generation of indices to another in a single
    alias-update call, which the engine applies all or nothing.
    """

    def __init__(self, engine: SearchEngine) -> None:
        self.engine = engine

    def _actions_for(self, action: str, descriptors: Sequence[IndexDescriptor],
                     skipped: List[str]) -> List[Dict[str, Any]]:
        actions = []
        for descriptor in descriptors:
            if not self.engine.index_exists(descriptor.name):
                logger.info(f"Index {descriptor.name} does not exist, skipping its aliases")
                skipped.append(descriptor.name)
                continue
            actions.extend(alias_action(action, descriptor.name, alias) for alias in descriptor.aliases)
        return actions

    def build_actions(self, old: Sequence[IndexDescriptor], new: Sequence[IndexDescriptor]) -> AliasSwap:
        if not old or not new:
            raise MissingIndexListError("alias swap")
        for descriptor in [*old, *new]:
            if not descriptor.name:
                raise IncompleteDescriptorError(descriptor, "alias swap needs named indices")

        swap = AliasSwap()
        swap.actions.extend(self._actions_for("remove", old, swap.skipped_indices))
        swap.actions.extend(self._actions_for("add", new, swap.skipped_indices))
        return swap

    def swap(self, old: Sequence[IndexDescriptor], new: Sequence[IndexDescriptor]) -> AliasSwap:
        swap = self.build_actions(old, new)
        if not swap.actions:
            logger.info("No alias actions to apply")
            return swap
        logger.info(f"Applying {len(swap.actions)} alias actions")
        swap.response = self.engine.update_aliases(swap.actions)
        return swap
