import pytest

from index_lifecycle.models.inventory import FanOutLimitExceededError, IndexInventory, IndexTarget
from tests.utils import InMemorySearchEngine

ARTICLE_MAPPINGS = {"article": {"properties": {}}, "comment": {"properties": {}}, "_default_": {}}


@pytest.fixture
def engine():
    engine = InMemorySearchEngine()
    engine.add_index("articles_v1", mappings=ARTICLE_MAPPINGS, aliases=["articles"])
    engine.add_index("users_v1", mappings={"user": {"properties": {}}})
    return engine


def test_list_indices_and_aliases(engine):
    assert IndexInventory(engine).list_indices_and_aliases() == {
        "articles_v1": ["articles"],
        "users_v1": [],
    }


def test_get_all_types(engine):
    inventory = IndexInventory(engine)
    assert inventory.get_all_types("articles_v1") == ["article", "comment"]
    assert inventory.get_all_types("articles") == ["article", "comment"]
    assert inventory.get_all_types() == ["article", "comment", "user"]


def test_explicit_index_and_type_are_not_expanded(engine):
    targets = IndexInventory(engine).supply_index_and_type("articles_v1", "article")
    assert targets == [IndexTarget("articles_v1", "article")]
    assert engine.calls == []


def test_missing_type_expands_to_types_of_each_index(engine):
    targets = IndexInventory(engine).supply_index_and_type(["articles_v1", "users_v1"])
    assert targets == [
        IndexTarget("articles_v1", "article"),
        IndexTarget("articles_v1", "comment"),
        IndexTarget("users_v1", "user"),
    ]


def test_missing_index_and_type_expand_to_cross_product(engine):
    targets = IndexInventory(engine).supply_index_and_type()
    assert len(targets) == 3
    assert IndexTarget("users_v1", "user") in targets


def test_missing_index_with_explicit_types(engine):
    targets = IndexInventory(engine).supply_index_and_type(doc_type=["article"])
    assert targets == [IndexTarget("articles_v1", "article"), IndexTarget("users_v1", "article")]


def test_fan_out_is_bounded(engine):
    with pytest.raises(FanOutLimitExceededError) as excinfo:
        IndexInventory(engine, max_fan_out=2).supply_index_and_type()
    assert excinfo.value.limit == 2
