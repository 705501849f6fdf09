import pytest
import requests

from index_lifecycle.models.cluster import AuthMethod
from index_lifecycle.models.search_engine import ClusterSearchEngine
from index_lifecycle.models.version import EngineGeneration
from tests.utils import create_valid_cluster

ENDPOINT = "http://localhost:9200"


@pytest.fixture
def engine():
    return ClusterSearchEngine(create_valid_cluster(endpoint=ENDPOINT, auth_type=AuthMethod.NO_AUTH,
                                                    version="ES_2.4"))


def test_engine_takes_generation_from_cluster(engine):
    assert engine.generation == EngineGeneration.LEGACY


def test_ping(engine, requests_mock):
    requests_mock.head(f"{ENDPOINT}/", status_code=200)
    assert engine.ping() is True
    requests_mock.head(f"{ENDPOINT}/", status_code=503)
    assert engine.ping() is False


def test_index_exists(engine, requests_mock):
    requests_mock.head(f"{ENDPOINT}/articles_v1", status_code=200)
    requests_mock.head(f"{ENDPOINT}/articles_v2", status_code=404)
    requests_mock.head(f"{ENDPOINT}/broken", status_code=500)
    assert engine.index_exists("articles_v1") is True
    assert engine.index_exists("articles_v2") is False
    with pytest.raises(requests.exceptions.HTTPError):
        engine.index_exists("broken")


def test_create_index_sends_body_as_json(engine, requests_mock):
    requests_mock.put(f"{ENDPOINT}/articles_v1", json={"acknowledged": True})
    body = {"settings": {"number_of_shards": 1}}
    assert engine.create_index("articles_v1", body) == {"acknowledged": True}
    assert requests_mock.last_request.json() == body
    assert requests_mock.last_request.headers["Content-Type"] == "application/json"


def test_delete_index_joins_names(engine, requests_mock):
    requests_mock.delete(f"{ENDPOINT}/articles_v1,articles_v2", json={"acknowledged": True})
    engine.delete_index(["articles_v1", "articles_v2"])
    assert requests_mock.called


def test_delete_index_error_propagates(engine, requests_mock):
    requests_mock.delete(f"{ENDPOINT}/articles_v1", status_code=404, json={"error": "index_not_found_exception"})
    with pytest.raises(requests.exceptions.HTTPError):
        engine.delete_index("articles_v1")


def test_update_aliases(engine, requests_mock):
    requests_mock.post(f"{ENDPOINT}/_aliases", json={"acknowledged": True})
    actions = [{"remove": {"index": "articles_v1", "alias": "articles"}},
               {"add": {"index": "articles_v2", "alias": "articles"}}]
    engine.update_aliases(actions)
    assert requests_mock.last_request.json() == {"actions": actions}


def test_search_with_scroll(engine, requests_mock):
    requests_mock.post(f"{ENDPOINT}/articles/article/_search", json={"_scroll_id": "abc", "hits": {"hits": []}})
    response = engine.search(index=["articles"], doc_type=["article"], body={"size": 10}, scroll="1m")
    assert response["_scroll_id"] == "abc"
    assert requests_mock.last_request.qs == {"scroll": ["1m"]}
    assert requests_mock.last_request.json() == {"size": 10}


def test_search_by_type_only_targets_all_indices(engine, requests_mock):
    requests_mock.post(f"{ENDPOINT}/_all/article/_search", json={"hits": {"hits": []}})
    engine.search(doc_type=["article"])
    assert requests_mock.last_request.json() == {}
    assert requests_mock.last_request.qs == {}


def test_scroll_and_clear_scroll(engine, requests_mock):
    requests_mock.post(f"{ENDPOINT}/_search/scroll", json={"_scroll_id": "def", "hits": {"hits": []}})
    requests_mock.delete(f"{ENDPOINT}/_search/scroll", json={"succeeded": True})
    engine.scroll("abc", "1m")
    assert requests_mock.last_request.json() == {"scroll": "1m", "scroll_id": "abc"}
    assert engine.clear_scroll("def") is True
    assert requests_mock.last_request.json() == {"scroll_id": ["def"]}


def test_clear_scroll_not_found_is_benign(engine, requests_mock):
    requests_mock.delete(f"{ENDPOINT}/_search/scroll", status_code=404, json={"succeeded": True, "num_freed": 0})
    assert engine.clear_scroll("gone") is False


def test_bulk_sends_ndjson(engine, requests_mock):
    requests_mock.post(f"{ENDPOINT}/_bulk", json={"took": 1, "errors": False, "items": []})
    payload = '{"delete": {"_index": "a", "_type": "t", "_id": "1"}}\n'
    engine.bulk(payload)
    assert requests_mock.last_request.headers["Content-Type"] == "application/x-ndjson"
    assert requests_mock.last_request.text == payload


def test_bulk_uses_engine_timeout_and_raises_on_error_status(requests_mock, mocker):
    cluster = create_valid_cluster(endpoint=ENDPOINT, auth_type=AuthMethod.NO_AUTH)
    engine = ClusterSearchEngine(cluster, timeout=5)
    call_api = mocker.spy(cluster, "call_api")
    requests_mock.post(f"{ENDPOINT}/_bulk", status_code=500, json={"error": {"type": "es_rejected_execution"}})
    with pytest.raises(requests.exceptions.HTTPError):
        engine.bulk('{"delete": {"_index": "a", "_type": "t", "_id": "1"}}\n')
    assert call_api.call_args.kwargs["timeout"] == 5
    assert call_api.call_args.kwargs["headers"] == {"Content-Type": "application/x-ndjson"}


def test_get_mapping(engine, requests_mock):
    requests_mock.get(f"{ENDPOINT}/articles_v1/_mapping", json={"articles_v1": {"mappings": {}}})
    requests_mock.get(f"{ENDPOINT}/_mapping", json={})
    assert engine.get_mapping(["articles_v1"]) == {"articles_v1": {"mappings": {}}}
    assert engine.get_mapping() == {}


def test_cat_aliases_and_indices_ask_for_json(engine, requests_mock):
    requests_mock.get(f"{ENDPOINT}/_cat/aliases", json=[{"alias": "articles", "index": "articles_v1"}])
    requests_mock.get(f"{ENDPOINT}/_cat/indices", json=[{"index": "articles_v1"}])
    assert engine.cat_aliases() == [{"alias": "articles", "index": "articles_v1"}]
    assert requests_mock.last_request.qs == {"format": ["json"], "h": ["alias,index"]}
    assert engine.cat_indices() == [{"index": "articles_v1"}]
    assert requests_mock.last_request.qs == {"format": ["json"], "h": ["index"]}


def test_document_operations(engine, requests_mock):
    doc_url = f"{ENDPOINT}/articles_v1/article/1"
    requests_mock.put(doc_url, json={"result": "created"})
    requests_mock.get(doc_url, json={"_id": "1", "found": True})
    requests_mock.post(f"{doc_url}/_update", json={"result": "updated"})
    requests_mock.delete(doc_url, json={"result": "deleted"})

    engine.index_document("articles_v1", "article", "1", {"title": "a"}, parent="7")
    assert requests_mock.last_request.qs == {"parent": ["7"]}
    assert engine.get_document("articles_v1", "article", "1") == {"_id": "1", "found": True}
    engine.update_document("articles_v1", "article", "1", {"doc": {"title": "b"}}, retry_on_conflict=3)
    assert requests_mock.last_request.qs == {"retry_on_conflict": ["3"]}
    assert requests_mock.last_request.json() == {"doc": {"title": "b"}}
    assert engine.delete_document("articles_v1", "article", "1") is True


def test_missing_documents(engine, requests_mock):
    doc_url = f"{ENDPOINT}/articles_v1/article/2"
    requests_mock.get(doc_url, status_code=404, json={"found": False})
    requests_mock.delete(doc_url, status_code=404, json={"found": False})
    assert engine.get_document("articles_v1", "article", "2") is None
    assert engine.delete_document("articles_v1", "article", "2") is False


def test_delete_by_query(engine, requests_mock):
    requests_mock.post(f"{ENDPOINT}/articles_v1/article/_delete_by_query", json={"deleted": 4})
    body = {"query": {"match_all": {}}}
    assert engine.delete_by_query(["articles_v1"], ["article"], body) == {"deleted": 4}
    assert requests_mock.last_request.json() == body
