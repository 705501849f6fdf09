import logging
from typing import Any, Dict, List, Optional

from index_lifecycle.middleware.error_handler import handle_errors
from index_lifecycle.middleware.json_support import support_json_return
from index_lifecycle.models.command_result import CommandResult
from index_lifecycle.models.documents import DocumentStore
from index_lifecycle.models.search_result import Sort

logger = logging.getLogger(__name__)


@support_json_return()
@handle_errors("search")
def search(store: DocumentStore, body: Optional[Dict[str, Any]] = None, index: Optional[List[str]] = None,
           doc_type: Optional[List[str]] = None, sort: Optional[List[Sort]] = None) -> CommandResult[Dict]:
    page = store.search(body=body, index=index, doc_type=doc_type, sort=sort)
    return CommandResult.ok(page.to_json())


@support_json_return()
@handle_errors("search")
def get_document(store: DocumentStore, doc_id: str, index: Optional[List[str]] = None,
                 doc_type: Optional[List[str]] = None) -> CommandResult[Dict | str]:
    item = store.get_document(doc_id, index=index, doc_type=doc_type)
    if item is None:
        return CommandResult.failed(f"Document {doc_id} was not found")
    return CommandResult.ok(item.to_json())
