import pathlib

import pytest

from index_lifecycle.environment import Environment
from index_lifecycle.models.cluster import AuthMethod, NoClusterDefinedError
from index_lifecycle.models.errors import MissingIndexListError
from index_lifecycle.models.search_engine import ClusterSearchEngine
from index_lifecycle.models.version import EngineGeneration, UnsupportedEngineVersionError
from tests.utils import InMemorySearchEngine

TEST_DATA_DIRECTORY = pathlib.Path(__file__).parent / "data"
VALID_SERVICES_YAML = TEST_DATA_DIRECTORY / "services.yaml"


def test_valid_services_yaml_to_environment_succeeds():
    env = Environment(VALID_SERVICES_YAML)
    assert env.cluster.endpoint == "https://elasticsearch:9200"
    assert env.cluster.auth_type == AuthMethod.BASIC_AUTH
    assert env.client_options.user_agent_extra == "index-lifecycle-tests"
    assert isinstance(env.engine, ClusterSearchEngine)
    assert env.engine.generation == EngineGeneration.MODERN
    assert env.inventory.max_fan_out == 50
    assert list(env.indices) == ["articles_v1", "articles_v2"]


def test_environment_reads_reindex_section():
    env = Environment(VALID_SERVICES_YAML)
    assert env.reindex_config.scroll == "2m"
    assert env.reindex_config.page_size == 100
    assert env.reindex_config.create_new_indexes
    assert not env.reindex_config.remove_old_indexes
    [job] = env.reindex_jobs()
    assert (job.source.name, job.destination.name) == ("articles_v1", "articles_v2")


def test_descriptors_by_name():
    env = Environment(VALID_SERVICES_YAML)
    assert [d.name for d in env.descriptors()] == ["articles_v1", "articles_v2"]
    assert [d.name for d in env.descriptors(["articles_v2"])] == ["articles_v2"]
    with pytest.raises(ValueError) as excinfo:
        env.descriptors(["articles_v2", "users_v1"])
    assert "users_v1" in str(excinfo.value)


def test_environment_refuses_cluster_without_mapping_types():
    config = {"cluster": {"endpoint": "https://opensearch:9200", "version": "OS_2.11", "no_auth": None}}
    with pytest.raises(UnsupportedEngineVersionError):
        Environment(config=config)


def test_environment_without_cluster():
    env = Environment(config={"indices": []})
    assert env.engine is None
    assert env.inventory is None
    with pytest.raises(NoClusterDefinedError):
        env.require_engine()


def test_environment_with_injected_engine():
    engine = InMemorySearchEngine()
    env = Environment(config={}, engine=engine)
    assert env.require_engine() is engine
    assert env.cluster is None
    assert env.documents.engine is engine


def test_environment_needs_a_config():
    with pytest.raises(ValueError):
        Environment()


def test_invalid_environment_config_raises():
    with pytest.raises(ValueError) as excinfo:
        Environment(config={"indices": "articles_v1"})
    assert excinfo.value.args[0] == "Invalid config file"

    with pytest.raises(ValueError):
        Environment(config={"inventory": {"max_fan_out": 0}})


def test_duplicate_index_names_are_rejected():
    index = {"name": "articles_v1", "mapping": {"article": {"fields": [{"name": "title", "type": "text"}]}}}
    with pytest.raises(ValueError) as excinfo:
        Environment(config={"indices": [index, dict(index)]})
    assert "more than once" in excinfo.value.args[1]


def test_reindex_jobs_need_index_names():
    env = Environment(config={"reindex": {"source": [], "destination": []}})
    with pytest.raises(MissingIndexListError):
        env.reindex_jobs()
