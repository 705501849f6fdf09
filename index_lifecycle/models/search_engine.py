from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import quote
import json
import logging

from index_lifecycle.models.cluster import Cluster, HttpMethod
from index_lifecycle.models.version import EngineGeneration

logger = logging.getLogger(__name__)

ALL_INDICES = "_all"
JSON_HEADERS = {"Content-Type": "application/json"}
NDJSON_HEADERS = {"Content-Type": "application/x-ndjson"}


class SearchEngine(ABC):
    """
    Interface for the remote search engine. Every method performs exactly one round trip and returns the
    engine's decoded response. Transport failures (connection problems, 4xx/5xx) are raised as
    `requests.exceptions.RequestException` subclasses, except where a method documents a benign status.
    """

    generation: EngineGeneration = EngineGeneration.MODERN

    @abstractmethod
    def info(self) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def ping(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def index_exists(self, name: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def create_index(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def delete_index(self, names: List[str] | str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def update_aliases(self, actions: List[Dict[str, Any]]) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def search(self, index: Optional[List[str]] = None, doc_type: Optional[List[str]] = None,
               body: Optional[Dict[str, Any]] = None, scroll: Optional[str] = None) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def scroll(self, scroll_id: str, scroll: str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def clear_scroll(self, scroll_id: str) -> bool:
        """Release a server-side cursor. Returns False if the engine no longer knows the cursor."""
        raise NotImplementedError

    @abstractmethod
    def bulk(self, payload: str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def get_mapping(self, index: Optional[List[str]] = None) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def cat_aliases(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def cat_indices(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def index_document(self, index: str, doc_type: str, doc_id: str, body: Dict[str, Any],
                       parent: Optional[str] = None) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def get_document(self, index: str, doc_type: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Returns None when the document (or its index) does not exist."""
        raise NotImplementedError

    @abstractmethod
    def update_document(self, index: str, doc_type: str, doc_id: str, body: Dict[str, Any],
                        retry_on_conflict: int = 0, parent: Optional[str] = None) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def delete_document(self, index: str, doc_type: str, doc_id: str) -> bool:
        """Returns False when there was nothing to delete."""
        raise NotImplementedError

    @abstractmethod
    def delete_by_query(self, index: List[str], doc_type: Optional[List[str]],
                        body: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


def _join(names: Optional[List[str]]) -> str:
    return ",".join(quote(name, safe="*") for name in names) if names else ""


def _scoped_path(index: Optional[List[str]], doc_type: Optional[List[str]], suffix: str) -> str:
    path = ""
    if index:
        path += f"/{_join(index)}"
        if doc_type:
            path += f"/{_join(doc_type)}"
    elif doc_type:
        path += f"/{ALL_INDICES}/{_join(doc_type)}"
    return f"{path}/{suffix}"


def _document_path(index: str, doc_type: str, doc_id: str) -> str:
    return f"/{quote(index)}/{quote(doc_type)}/{quote(str(doc_id), safe='')}"


class ClusterSearchEngine(SearchEngine):
    """
    SearchEngine implementation that speaks the REST protocol of a Cluster.
    """

    def __init__(self, cluster: Cluster, timeout: Optional[float] = None) -> None:
        self.cluster = cluster
        self.timeout = timeout
        self.generation = cluster.generation

    def _call(self, path: str, method: HttpMethod = HttpMethod.GET, body: Optional[Dict[str, Any]] = None,
              ndjson: Optional[str] = None, raise_error: bool = True, **kwargs):
        if ndjson is not None:
            data, headers = ndjson.encode("utf-8"), NDJSON_HEADERS
        elif body is not None:
            data, headers = json.dumps(body), JSON_HEADERS
        else:
            data, headers = None, None
        return self.cluster.call_api(path, method=method, data=data, headers=headers, timeout=self.timeout,
                                     raise_error=raise_error, **kwargs)

    def info(self) -> Dict[str, Any]:
        return self._call("/").json()

    def ping(self) -> bool:
        r = self._call("/", method=HttpMethod.HEAD, raise_error=False)
        return r.ok

    def index_exists(self, name: str) -> bool:
        r = self._call(f"/{quote(name)}", method=HttpMethod.HEAD, raise_error=False)
        if r.status_code == 404:
            return False
        r.raise_for_status()
        return True

    def create_index(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return self._call(f"/{quote(name)}", method=HttpMethod.PUT, body=body).json()

    def delete_index(self, names: List[str] | str) -> Dict[str, Any]:
        target = names if isinstance(names, str) else _join(names)
        return self._call(f"/{target}", method=HttpMethod.DELETE).json()

    def update_aliases(self, actions: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._call("/_aliases", method=HttpMethod.POST, body={"actions": actions}).json()

    def search(self, index: Optional[List[str]] = None, doc_type: Optional[List[str]] = None,
               body: Optional[Dict[str, Any]] = None, scroll: Optional[str] = None) -> Dict[str, Any]:
        params = {"scroll": scroll} if scroll else {}
        return self._call(_scoped_path(index, doc_type, "_search"), method=HttpMethod.POST, body=body or {},
                          params=params).json()

    def scroll(self, scroll_id: str, scroll: str) -> Dict[str, Any]:
        return self._call("/_search/scroll", method=HttpMethod.POST,
                          body={"scroll": scroll, "scroll_id": scroll_id}).json()

    def clear_scroll(self, scroll_id: str) -> bool:
        r = self._call("/_search/scroll", method=HttpMethod.DELETE, body={"scroll_id": [scroll_id]},
                       raise_error=False)
        if r.status_code == 404:
            logger.info(f"Scroll {scroll_id[:32]} was already released")
            return False
        r.raise_for_status()
        return True

    def bulk(self, payload: str) -> Dict[str, Any]:
        return self._call("/_bulk", method=HttpMethod.POST, ndjson=payload).json()

    def get_mapping(self, index: Optional[List[str]] = None) -> Dict[str, Any]:
        path = f"/{_join(index)}/_mapping" if index else "/_mapping"
        return self._call(path).json()

    def cat_aliases(self) -> List[Dict[str, Any]]:
        return self._call("/_cat/aliases", params={"format": "json", "h": "alias,index"}).json()

    def cat_indices(self) -> List[Dict[str, Any]]:
        return self._call("/_cat/indices", params={"format": "json", "h": "index"}).json()

    def index_document(self, index: str, doc_type: str, doc_id: str, body: Dict[str, Any],
                       parent: Optional[str] = None) -> Dict[str, Any]:
        params = {"parent": parent} if parent else {}
        return self._call(_document_path(index, doc_type, doc_id), method=HttpMethod.PUT, body=body,
                          params=params).json()

    def get_document(self, index: str, doc_type: str, doc_id: str) -> Optional[Dict[str, Any]]:
        r = self._call(_document_path(index, doc_type, doc_id), raise_error=False)
        if r.status_code == 404:
            return None
        r.raise_for_status()
        return r.json()

    def update_document(self, index: str, doc_type: str, doc_id: str, body: Dict[str, Any],
                        retry_on_conflict: int = 0, parent: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"retry_on_conflict": retry_on_conflict} if retry_on_conflict else {}
        if parent:
            params["parent"] = parent
        return self._call(f"{_document_path(index, doc_type, doc_id)}/_update", method=HttpMethod.POST,
                          body=body, params=params).json()

    def delete_document(self, index: str, doc_type: str, doc_id: str) -> bool:
        r = self._call(_document_path(index, doc_type, doc_id), method=HttpMethod.DELETE, raise_error=False)
        if r.status_code == 404:
            return False
        r.raise_for_status()
        return True

    def delete_by_query(self, index: List[str], doc_type: Optional[List[str]],
                        body: Dict[str, Any]) -> Dict[str, Any]:
        return self._call(_scoped_path(index, doc_type, "_delete_by_query"), method=HttpMethod.POST,
                          body=body).json()
