"""Factory for creating graph stores."""

from notegraph.config import Config
from notegraph.core.graph_store.base import GraphStore
from notegraph.core.graph_store.neo4j_store import Neo4jGraphStore
from notegraph.core.graph_store.sqlite_store import SQLiteGraphStore
from notegraph.utils.exceptions import ConfigurationError
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)


class GraphStoreFactory:
    """Build the configured graph store backend."""

    @staticmethod
    def create(config: Config) -> GraphStore:
        """
        Create a graph store from configuration.

        Args:
            config: Application configuration

        Returns:
            GraphStore instance

        Raises:
            ConfigurationError: If the backend is not supported
        """
        backend = config.graph_backend.lower()
        logger.info(f"Creating graph store: {backend}")

        if backend == "sqlite":
            return SQLiteGraphStore(db_path=config.sqlite.db_path)
        if backend == "neo4j":
            return Neo4jGraphStore(
                uri=config.neo4j.uri,
                username=config.neo4j.username,
                password=config.neo4j.password,
                database=config.neo4j.database,
            )
        raise ConfigurationError(
            f"Unknown graph backend: {config.graph_backend}",
            {"backend": config.graph_backend, "supported": ["sqlite", "neo4j"]},
        )


def create_graph_store(backend: str = "sqlite", **kwargs) -> GraphStore:
    """
    Factory function to create graph stores without a full Config.

    Args:
        backend: Type of backend ("sqlite" or "neo4j")
        **kwargs: Backend-specific arguments

    Returns:
        GraphStore instance
    """
    config = Config(graph_backend=backend)
    if "db_path" in kwargs:
        config.sqlite.db_path = kwargs["db_path"]
    for key in ("uri", "username", "password", "database"):
        if key in kwargs:
            setattr(config.neo4j, key, kwargs[key])
    return GraphStoreFactory.create(config)
