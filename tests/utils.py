import itertools
import json
from typing import Any, Dict, List, Optional, Tuple

from index_lifecycle.models.cluster import AuthMethod, Cluster
from index_lifecycle.models.search_engine import ALL_INDICES, SearchEngine
from index_lifecycle.models.version import EngineGeneration


def create_valid_cluster(endpoint: str = "https://opensearchtarget:9200",
                         allow_insecure: bool = True,
                         auth_type: AuthMethod = AuthMethod.BASIC_AUTH,
                         details: Optional[Dict] = None,
                         version: Optional[str] = None,
                         client_options=None):

    if details is None and auth_type == AuthMethod.BASIC_AUTH:
        details = {"username": "admin", "password": "myStrongPassword123!"}

    custom_cluster_config = {
        "endpoint": endpoint,
        "allow_insecure": allow_insecure,
        auth_type.name.lower(): details if details else {}
    }
    if version:
        custom_cluster_config["version"] = version
    return Cluster(custom_cluster_config, client_options=client_options)


class InMemorySearchEngine(SearchEngine):
    """
    A SearchEngine that keeps indices, aliases and documents in dicts. Only match_all and ids queries are
    understood. Every call is recorded in `calls` as (method name, arguments).

    `new_scroll_id_per_page=False` makes every scroll response reuse the first scroll id. Methods named in
    `failures` raise the given exception instead of doing anything. Document ids in `rejected_ids` fail
    inside bulk requests.
    """

    def __init__(self, generation: EngineGeneration = EngineGeneration.MODERN, new_scroll_id_per_page: bool = True,
                 failures: Optional[Dict[str, Exception]] = None) -> None:
        self.generation = generation
        self.new_scroll_id_per_page = new_scroll_id_per_page
        self.failures = failures or {}
        self.rejected_ids: set = set()
        self.indices: Dict[str, Dict[str, Any]] = {}
        self.aliases: Dict[str, set] = {}
        self.calls: List[Tuple[str, Any]] = []
        self.scrolls: Dict[str, Tuple[List[Dict], int, int]] = {}
        self.cleared_scroll_ids: List[str] = []
        self._scroll_counter = itertools.count(1)

    def _record(self, method: str, *args):
        self.calls.append((method, args))
        if method in self.failures:
            raise self.failures[method]

    def calls_to(self, method: str) -> List[Any]:
        return [args for name, args in self.calls if name == method]

    # Test helpers

    def add_index(self, name: str, documents: Optional[List[Dict[str, Any]]] = None,
                  mappings: Optional[Dict[str, Any]] = None, aliases: Optional[List[str]] = None) -> None:
        self.indices[name] = {"body": {"mappings": mappings or {}}, "docs": {}}
        for doc in documents or []:
            self._store(name, doc["_type"], doc["_id"], doc["_source"], doc.get("_parent"))
        for alias in aliases or []:
            self.aliases.setdefault(alias, set()).add(name)

    def documents(self, index: str) -> List[Dict[str, Any]]:
        return [self._hit(index, doc_type, doc_id, doc)
                for (doc_type, doc_id), doc in sorted(self.indices[index]["docs"].items())]

    def aliases_of(self, index: str) -> List[str]:
        return sorted(alias for alias, targets in self.aliases.items() if index in targets)

    # Internals

    def _store(self, index, doc_type, doc_id, source, parent=None):
        self.indices[index]["docs"][(doc_type, str(doc_id))] = {"_source": source, "_parent": parent}

    @staticmethod
    def _hit(index, doc_type, doc_id, doc) -> Dict[str, Any]:
        hit = {"_index": index, "_type": doc_type, "_id": doc_id, "_score": 1.0, "_source": doc["_source"]}
        if doc.get("_parent"):
            hit["_parent"] = doc["_parent"]
        return hit

    def _resolve(self, names: Optional[List[str]]) -> List[str]:
        if not names or ALL_INDICES in names:
            return sorted(self.indices)
        resolved = []
        for name in names:
            if name in self.indices:
                resolved.append(name)
            else:
                resolved.extend(sorted(self.aliases.get(name, set())))
        return resolved

    def _matching_hits(self, index, doc_type, body) -> List[Dict[str, Any]]:
        query = (body or {}).get("query", {"match_all": {}})
        ids = query.get("ids", {}).get("values") if "ids" in query else None
        hits = []
        for index_name in self._resolve(index):
            for hit in self.documents(index_name):
                if doc_type and hit["_type"] not in doc_type:
                    continue
                if ids is not None and hit["_id"] not in ids:
                    continue
                hits.append(hit)
        return hits

    def _new_scroll_id(self) -> str:
        return f"scroll-{next(self._scroll_counter)}"

    def _page(self, hits: List[Dict], position: int, size: int, scroll_id: Optional[str] = None) -> Dict[str, Any]:
        page = hits[position:position + size]
        next_id = scroll_id if scroll_id and not self.new_scroll_id_per_page else self._new_scroll_id()
        self.scrolls[next_id] = (hits, position + len(page), size)
        return {"took": 1, "_scroll_id": next_id,
                "hits": {"total": len(hits), "max_score": 1.0, "hits": page}}

    # SearchEngine

    def info(self) -> Dict[str, Any]:
        self._record("info")
        return {"version": {"number": "5.6.16"}}

    def ping(self) -> bool:
        self._record("ping")
        return True

    def index_exists(self, name: str) -> bool:
        self._record("index_exists", name)
        return name in self.indices or name in self.aliases

    def create_index(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        self._record("create_index", name, body)
        self.indices[name] = {"body": body, "docs": {}}
        for alias in body.get("aliases", {}):
            self.aliases.setdefault(alias, set()).add(name)
        return {"acknowledged": True}

    def delete_index(self, names: List[str] | str) -> Dict[str, Any]:
        self._record("delete_index", names)
        targets = list(self.indices) if names == ALL_INDICES else ([names] if isinstance(names, str) else names)
        for name in targets:
            del self.indices[name]
            for alias_targets in self.aliases.values():
                alias_targets.discard(name)
        self.aliases = {alias: targets for alias, targets in self.aliases.items() if targets}
        return {"acknowledged": True}

    def update_aliases(self, actions: List[Dict[str, Any]]) -> Dict[str, Any]:
        self._record("update_aliases", actions)
        for action in actions:
            for kind, target in action.items():
                if kind == "add":
                    self.aliases.setdefault(target["alias"], set()).add(target["index"])
                else:
                    self.aliases.get(target["alias"], set()).discard(target["index"])
        self.aliases = {alias: targets for alias, targets in self.aliases.items() if targets}
        return {"acknowledged": True}

    def search(self, index=None, doc_type=None, body=None, scroll=None) -> Dict[str, Any]:
        self._record("search", index, doc_type, body, scroll)
        hits = self._matching_hits(index, doc_type, body)
        size = (body or {}).get("size", 10)
        if scroll:
            return self._page(hits, 0, size)
        return {"took": 1, "hits": {"total": len(hits), "max_score": 1.0, "hits": hits[:size]}}

    def scroll(self, scroll_id: str, scroll: str) -> Dict[str, Any]:
        self._record("scroll", scroll_id, scroll)
        hits, position, size = self.scrolls[scroll_id]
        return self._page(hits, position, size, scroll_id)

    def clear_scroll(self, scroll_id: str) -> bool:
        self._record("clear_scroll", scroll_id)
        self.cleared_scroll_ids.append(scroll_id)
        return self.scrolls.pop(scroll_id, None) is not None

    def bulk(self, payload: str) -> Dict[str, Any]:
        self._record("bulk", payload)
        lines = [json.loads(line) for line in payload.splitlines() if line]
        items = []
        position = 0
        while position < len(lines):
            action, meta = next(iter(lines[position].items()))
            position += 1
            body = None
            if action != "delete":
                body = lines[position]
                position += 1
            if meta["_id"] in self.rejected_ids:
                items.append({action: {"_id": meta["_id"], "status": 400,
                                       "error": {"type": "mapper_parsing_exception"}}})
                continue
            if action == "index":
                self._store(meta["_index"], meta["_type"], meta["_id"], body, meta.get("parent"))
            elif action == "update":
                doc = self.indices[meta["_index"]]["docs"][(meta["_type"], meta["_id"])]
                doc["_source"] = {**doc["_source"], **body.get("doc", {})}
            else:
                self.indices[meta["_index"]]["docs"].pop((meta["_type"], meta["_id"]), None)
            items.append({action: {"_id": meta["_id"], "status": 200}})
        return {"took": 3, "errors": any("error" in next(iter(i.values())) for i in items), "items": items}

    def get_mapping(self, index=None) -> Dict[str, Any]:
        self._record("get_mapping", index)
        return {name: {"mappings": self.indices[name]["body"].get("mappings", {})} for name in self._resolve(index)}

    def cat_aliases(self) -> List[Dict[str, Any]]:
        self._record("cat_aliases")
        return [{"alias": alias, "index": index}
                for alias, targets in sorted(self.aliases.items()) for index in sorted(targets)]

    def cat_indices(self) -> List[Dict[str, Any]]:
        self._record("cat_indices")
        return [{"index": name} for name in sorted(self.indices)]

    def index_document(self, index, doc_type, doc_id, body, parent=None) -> Dict[str, Any]:
        self._record("index_document", index, doc_type, doc_id, body, parent)
        if index not in self.indices:
            self.add_index(index)
        self._store(index, doc_type, doc_id, body, parent)
        return {"_index": index, "_type": doc_type, "_id": doc_id, "result": "created"}

    def get_document(self, index, doc_type, doc_id) -> Optional[Dict[str, Any]]:
        self._record("get_document", index, doc_type, doc_id)
        doc = self.indices.get(index, {}).get("docs", {}).get((doc_type, doc_id))
        if doc is None:
            return None
        return {**self._hit(index, doc_type, doc_id, doc), "found": True}

    def update_document(self, index, doc_type, doc_id, body, retry_on_conflict=0, parent=None) -> Dict[str, Any]:
        self._record("update_document", index, doc_type, doc_id, body, retry_on_conflict, parent)
        doc = self.indices[index]["docs"][(doc_type, doc_id)]
        doc["_source"] = {**doc["_source"], **body.get("doc", {})}
        return {"_index": index, "_type": doc_type, "_id": doc_id, "result": "updated"}

    def delete_document(self, index, doc_type, doc_id) -> bool:
        self._record("delete_document", index, doc_type, doc_id)
        return self.indices.get(index, {}).get("docs", {}).pop((doc_type, doc_id), None) is not None

    def delete_by_query(self, index, doc_type, body) -> Dict[str, Any]:
        self._record("delete_by_query", index, doc_type, body)
        hits = self._matching_hits(index, doc_type, body)
        for hit in hits:
            self.indices[hit["_index"]]["docs"].pop((hit["_type"], hit["_id"]))
        return {"deleted": len(hits)}
