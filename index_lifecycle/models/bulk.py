from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Sequence
import json
import logging

from index_lifecycle.models.errors import IncompleteDescriptorError
from index_lifecycle.models.search_engine import SearchEngine
from index_lifecycle.models.search_result import SearchItem

logger = logging.getLogger(__name__)

SCRIPT_LANGUAGE = "painless"


@dataclass(frozen=True)
class UpdateRequest:
    """
    The body of a partial update: either a script or a partial document, never both.

    `upsert` is the document to insert when a scripted update finds nothing. `doc_as_upsert` makes a
    partial document double as the inserted document.
    """
    script: Optional[Dict[str, Any]] = None
    doc: Optional[Dict[str, Any]] = None
    upsert: Optional[Dict[str, Any]] = None
    doc_as_upsert: bool = False

    def __post_init__(self):
        if bool(self.script) == bool(self.doc):
            raise IncompleteDescriptorError(self, "an update needs exactly one of script or doc")

    def to_json(self) -> Dict[str, Any]:
        if self.script:
            body: Dict[str, Any] = {"script": {**self.script, "lang": SCRIPT_LANGUAGE}}
            if self.upsert:
                body["upsert"] = self.upsert
            return body
        body = {"doc": self.doc}
        if self.doc_as_upsert:
            body["doc_as_upsert"] = True
        return body


@dataclass(frozen=True)
class BulkOperation(ABC):
    index: str
    type: str
    id: str
    parent: Optional[str] = None

    action: ClassVar[str]
    requirements: ClassVar[str] = "bulk operations need an index, a type and an id"

    def has_all_required_information(self) -> bool:
        return bool(self.index) and bool(self.type) and bool(self.id)

    def validate(self) -> None:
        if not self.has_all_required_information():
            raise IncompleteDescriptorError(self, self.requirements)

    def metadata(self) -> Dict[str, Any]:
        meta: Dict[str, Any] = {"_index": self.index, "_type": self.type, "_id": self.id}
        if self.parent:
            meta["parent"] = self.parent
        return meta

    @abstractmethod
    def payload(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def to_lines(self) -> List[str]:
        lines = [json.dumps({self.action: self.metadata()})]
        payload = self.payload()
        if payload is not None:
            lines.append(json.dumps(payload))
        return lines


@dataclass(frozen=True)
class BulkIndex(BulkOperation):
    action: ClassVar[str] = "index"
    doc: Dict[str, Any] = field(default_factory=dict)
    requirements: ClassVar[str] = "indexing needs an index, a type, an id and a non-empty document"

    def has_all_required_information(self) -> bool:
        return super().has_all_required_information() and bool(self.doc)

    def payload(self) -> Optional[Dict[str, Any]]:
        return self.doc

    @classmethod
    def from_search_item(cls, item: SearchItem, index: str) -> 'BulkIndex':
        """Copy a hit into another index, keeping its type, id, parent and source."""
        return cls(index=index, type=item.type, id=item.id, parent=item.parent or None, doc=item.source)


@dataclass(frozen=True)
class BulkUpdate(BulkOperation):
    action: ClassVar[str] = "update"
    update: Optional[UpdateRequest] = None
    retry_on_conflict: int = 0
    requirements: ClassVar[str] = "updates need an index, a type, an id and an update request"

    def has_all_required_information(self) -> bool:
        return super().has_all_required_information() and self.update is not None

    def metadata(self) -> Dict[str, Any]:
        return {**super().metadata(), "_retry_on_conflict": self.retry_on_conflict}

    def payload(self) -> Optional[Dict[str, Any]]:
        return self.update.to_json()


@dataclass(frozen=True)
class BulkDelete(BulkOperation):
    action: ClassVar[str] = "delete"

    def payload(self) -> Optional[Dict[str, Any]]:
        return None


def serialize_operations(operations: Sequence[BulkOperation]) -> str:
    lines: List[str] = []
    for operation in operations:
        lines.extend(operation.to_lines())
    # The bulk endpoint requires the body to end with a newline.
    return "\n".join(lines) + "\n"


@dataclass
class BulkResult:
    took: int = 0
    errors: bool = False
    items: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def failed_items(self) -> List[Dict[str, Any]]:
        failed = []
        for item in self.items:
            for outcome in item.values():
                if "error" in outcome or outcome.get("status", 200) >= 300:
                    failed.append(item)
                    break
        return failed

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'BulkResult':
        return cls(took=response.get("took", 0), errors=bool(response.get("errors", False)),
                   items=response.get("items", []))


class BulkWriter:
    """
    Sends a batch of operations in one bulk request. Item level failures are reported back in the
    BulkResult, never retried. Chunking large batches is up to the caller.
    """

    def __init__(self, engine: SearchEngine) -> None:
        self.engine = engine

    def write(self, operations: Sequence[BulkOperation]) -> BulkResult:
        operations = list(operations)
        for operation in operations:
            operation.validate()
        if not operations:
            logger.debug("No bulk operations to send")
            return BulkResult()

        result = BulkResult.from_response(self.engine.bulk(serialize_operations(operations)))
        if result.errors:
            logger.warning(f"{len(result.failed_items)} of {len(operations)} bulk items failed")
        else:
            logger.info(f"Bulk request with {len(operations)} operations took {result.took}ms")
        return result
