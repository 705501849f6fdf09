from dataclasses import dataclass
from typing import Optional
import logging

from index_lifecycle.models.search_engine import SearchEngine

logger = logging.getLogger(__name__)


@dataclass
class ConnectionResult:
    connection_message: str
    connection_established: bool
    cluster_version: Optional[str]


def connection_check(engine: SearchEngine) -> ConnectionResult:
    caught_exception = None
    info = None
    try:
        if not engine.ping():
            return ConnectionResult(connection_message="Cluster answered the ping with an error status",
                                    connection_established=False,
                                    cluster_version=None)
        info = engine.info()
    except Exception as e:
        caught_exception = e
        logger.debug(f"Unable to access cluster with exception: {e}")
    if caught_exception is None:
        return ConnectionResult(connection_message="Successfully connected!",
                                connection_established=True,
                                cluster_version=info.get("version", {}).get("number"))
    return ConnectionResult(connection_message=f"Unable to connect to cluster with error: {caught_exception}",
                            connection_established=False,
                            cluster_version=None)

