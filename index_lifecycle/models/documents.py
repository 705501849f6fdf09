from typing import Any, Dict, Iterable, List, Optional
import copy
import logging

from index_lifecycle.models.bulk import UpdateRequest
from index_lifecycle.models.errors import IncompleteDescriptorError, MissingIndexListError
from index_lifecycle.models.inventory import IndexInventory
from index_lifecycle.models.search_engine import SearchEngine
from index_lifecycle.models.search_result import SearchItem, SearchResultPage, Sort
from index_lifecycle.models.utils import as_name_list

logger = logging.getLogger(__name__)


class DocumentStore:
    """
    Single document operations. Get, update and delete accept a missing index or type and try every
    index/type pair the inventory knows about.
    """

    def __init__(self, engine: SearchEngine, inventory: Optional[IndexInventory] = None) -> None:
        self.engine = engine
        self.inventory = inventory or IndexInventory(engine)

    def index_document(self, index: str, doc_type: str, doc_id: str, body: Dict[str, Any],
                       parent: Optional[str] = None) -> Dict[str, Any]:
        if not (index and doc_type and doc_id):
            raise IncompleteDescriptorError({"index": index, "type": doc_type, "id": doc_id},
                                            "indexing a document needs an index, a type and an id")
        return self.engine.index_document(index, doc_type, doc_id, body, parent=parent)

    def get_document(self, doc_id: str, index: Optional[str | Iterable[str]] = None,
                     doc_type: Optional[str | Iterable[str]] = None) -> Optional[SearchItem]:
        if not doc_id:
            raise IncompleteDescriptorError({"id": doc_id}, "getting a document needs an id")
        for target in self.inventory.supply_index_and_type(index, doc_type):
            data = self.engine.get_document(target.index, target.doc_type, doc_id)
            if data and data.get("found", True):
                return SearchItem.from_hit({**data, "_score": 1})
        logger.info(f"Document {doc_id} was not found")
        return None

    def document_exists(self, doc_id: str, index: Optional[str | Iterable[str]] = None,
                        doc_type: Optional[str | Iterable[str]] = None) -> bool:
        return self.get_document(doc_id, index=index, doc_type=doc_type) is not None

    def update_document(self, doc_id: str, update: UpdateRequest, index: Optional[str | Iterable[str]] = None,
                        doc_type: Optional[str | Iterable[str]] = None, retry_on_conflict: int = 0,
                        parent: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Apply a partial update. When the index or type is not fully specified, the document is looked up
        first and updated where it was found; None is returned if it is nowhere.
        """
        index_names, type_names = as_name_list(index), as_name_list(doc_type)
        if len(index_names) == 1 and len(type_names) == 1:
            target_index, target_type = index_names[0], type_names[0]
        else:
            found = self.get_document(doc_id, index=index, doc_type=doc_type)
            if found is None:
                return None
            target_index, target_type = found.index, found.type
        return self.engine.update_document(target_index, target_type, doc_id, update.to_json(),
                                           retry_on_conflict=retry_on_conflict, parent=parent)

    def delete_document(self, doc_id: str, index: Optional[str | Iterable[str]] = None,
                        doc_type: Optional[str | Iterable[str]] = None) -> int:
        """Delete the document from every matching index/type pair. Returns how many copies were removed."""
        if not doc_id:
            raise IncompleteDescriptorError({"id": doc_id}, "deleting a document needs an id")
        deleted = 0
        for target in self.inventory.supply_index_and_type(index, doc_type):
            if self.engine.delete_document(target.index, target.doc_type, doc_id):
                deleted += 1
        return deleted

    def delete_by_query(self, body: Dict[str, Any], index: Optional[str | Iterable[str]] = None,
                        doc_type: Optional[str | Iterable[str]] = None) -> Dict[str, Any]:
        index_names = as_name_list(index)
        if not index_names:
            raise MissingIndexListError("delete by query")
        return self.engine.delete_by_query(index_names, as_name_list(doc_type) or None, body)

    def search(self, body: Optional[Dict[str, Any]] = None, index: Optional[str | Iterable[str]] = None,
               doc_type: Optional[str | Iterable[str]] = None,
               sort: Optional[List[Sort]] = None) -> SearchResultPage:
        query = copy.deepcopy(body) if body else {}
        if sort:
            query["sort"] = [s.to_json() for s in sort if s.has_all_required_information()]
        response = self.engine.search(index=as_name_list(index) or None, doc_type=as_name_list(doc_type) or None,
                                      body=query)
        return SearchResultPage.from_response(response)
