"""
Configuration for NoteGraph.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class SQLiteConfig(BaseModel):
    """SQLite graph store configuration."""

    db_path: str = "data/notegraph.db"


class Neo4jConfig(BaseModel):
    """Neo4j graph database configuration."""

    uri: str = "bolt://localhost:7687"
    username: str = "neo4j"
    password: str = "password"
    database: str = "neo4j"


class CacheConfig(BaseModel):
    """Result cache configuration."""

    enabled: bool = True
    # None keeps the cache in a temporary directory removed on close
    directory: str | None = None
    # diskcache culls least recently used entries past this size
    size_limit_mb: int = Field(default=64, ge=1)
    note_ttl_seconds: int = Field(default=3600, ge=1)
    search_ttl_seconds: int = Field(default=300, ge=1)
    # A note updated within this window gets half the base TTL
    recent_update_minutes: int = 10
    # A note viewed more than this many times gets double the base TTL
    popular_view_count: int = 10
    # Run an expiry sweep every N writes
    cleanup_interval: int = Field(default=100, ge=1)


class SearchConfig(BaseModel):
    """Relevance search configuration."""

    default_limit: int = 50
    max_limit: int = 500
    min_similarity: float = Field(default=0.1, ge=0.0, le=1.0)
    recency_days: int = 30
    # Full-text candidates fetched from the store per search
    candidate_limit: int = Field(default=5000, ge=1)


class TraversalConfig(BaseModel):
    """Graph traversal bounds."""

    default_depth: int = 2
    max_depth: int = 5
    default_limit: int = 20
    max_limit: int = 200
    hub_threshold: int = 5


class DiscoveryConfig(BaseModel):
    """Relationship re-discovery triggered by note events."""

    enabled: bool = True
    suggestion_threshold: float = Field(default=0.2, ge=0.0, le=1.0)
    suggestion_limit: int = 10


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    sqlite: SQLiteConfig = Field(default_factory=SQLiteConfig)
    neo4j: Neo4jConfig = Field(default_factory=Neo4jConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    traversal: TraversalConfig = Field(default_factory=TraversalConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Graph store backend
    graph_backend: str = "sqlite"

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            NOTEGRAPH_GRAPH_BACKEND: Graph backend (sqlite, neo4j)
            NOTEGRAPH_SQLITE_DB_PATH: SQLite database path
            NOTEGRAPH_NEO4J_URI: Neo4j URI
            NOTEGRAPH_NEO4J_USERNAME: Neo4j username
            NOTEGRAPH_NEO4J_PASSWORD: Neo4j password
            NOTEGRAPH_NEO4J_DATABASE: Neo4j database
            NOTEGRAPH_CACHE_ENABLED: Enable the result cache
            NOTEGRAPH_CACHE_DIR: Cache directory
            NOTEGRAPH_CACHE_SIZE_LIMIT_MB: Cache size limit in megabytes
            NOTEGRAPH_CACHE_NOTE_TTL: Base note TTL in seconds
            NOTEGRAPH_CACHE_SEARCH_TTL: Search result TTL in seconds
            NOTEGRAPH_SEARCH_MAX_LIMIT: Hard cap on search page size
            NOTEGRAPH_TRAVERSAL_MAX_DEPTH: Hard cap on traversal depth
            NOTEGRAPH_TRAVERSAL_HUB_THRESHOLD: Degree at which a note is a hub
            NOTEGRAPH_DISCOVERY_ENABLED: Re-discover relationships on note events
            NOTEGRAPH_LOG_LEVEL: Log level
        """
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None or value == "":
                return default
            # bool before int: bool is a subclass of int
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        return cls(
            graph_backend=get_env("NOTEGRAPH_GRAPH_BACKEND", "sqlite"),
            sqlite=SQLiteConfig(
                db_path=get_env("NOTEGRAPH_SQLITE_DB_PATH", "data/notegraph.db"),
            ),
            neo4j=Neo4jConfig(
                uri=get_env("NOTEGRAPH_NEO4J_URI", "bolt://localhost:7687"),
                username=get_env("NOTEGRAPH_NEO4J_USERNAME", "neo4j"),
                password=get_env("NOTEGRAPH_NEO4J_PASSWORD", "password"),
                database=get_env("NOTEGRAPH_NEO4J_DATABASE", "neo4j"),
            ),
            cache=CacheConfig(
                enabled=get_env("NOTEGRAPH_CACHE_ENABLED", True),
                directory=get_env("NOTEGRAPH_CACHE_DIR"),
                size_limit_mb=get_env("NOTEGRAPH_CACHE_SIZE_LIMIT_MB", 64),
                note_ttl_seconds=get_env("NOTEGRAPH_CACHE_NOTE_TTL", 3600),
                search_ttl_seconds=get_env("NOTEGRAPH_CACHE_SEARCH_TTL", 300),
                recent_update_minutes=get_env("NOTEGRAPH_CACHE_RECENT_UPDATE_MINUTES", 10),
                popular_view_count=get_env("NOTEGRAPH_CACHE_POPULAR_VIEW_COUNT", 10),
                cleanup_interval=get_env("NOTEGRAPH_CACHE_CLEANUP_INTERVAL", 100),
            ),
            search=SearchConfig(
                default_limit=get_env("NOTEGRAPH_SEARCH_DEFAULT_LIMIT", 50),
                max_limit=get_env("NOTEGRAPH_SEARCH_MAX_LIMIT", 500),
                min_similarity=get_env("NOTEGRAPH_SEARCH_MIN_SIMILARITY", 0.1),
                recency_days=get_env("NOTEGRAPH_SEARCH_RECENCY_DAYS", 30),
                candidate_limit=get_env("NOTEGRAPH_SEARCH_CANDIDATE_LIMIT", 5000),
            ),
            traversal=TraversalConfig(
                default_depth=get_env("NOTEGRAPH_TRAVERSAL_DEFAULT_DEPTH", 2),
                max_depth=get_env("NOTEGRAPH_TRAVERSAL_MAX_DEPTH", 5),
                default_limit=get_env("NOTEGRAPH_TRAVERSAL_DEFAULT_LIMIT", 20),
                max_limit=get_env("NOTEGRAPH_TRAVERSAL_MAX_LIMIT", 200),
                hub_threshold=get_env("NOTEGRAPH_TRAVERSAL_HUB_THRESHOLD", 5),
            ),
            discovery=DiscoveryConfig(
                enabled=get_env("NOTEGRAPH_DISCOVERY_ENABLED", True),
                suggestion_threshold=get_env("NOTEGRAPH_DISCOVERY_THRESHOLD", 0.2),
                suggestion_limit=get_env("NOTEGRAPH_DISCOVERY_LIMIT", 10),
            ),
            logging=LoggingConfig(
                level=get_env("NOTEGRAPH_LOG_LEVEL", "INFO"),
                log_to_file=get_env("NOTEGRAPH_LOG_TO_FILE", False),
                log_dir=get_env("NOTEGRAPH_LOG_DIR", "logs"),
                file_rotation=get_env("NOTEGRAPH_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("NOTEGRAPH_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("NOTEGRAPH_LOG_COMPRESSION", "zip"),
                serialize=get_env("NOTEGRAPH_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Only env sections that differ from the defaults override the YAML.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file=env_file)

        final_dict = {**config_dict}

        default = cls()
        for section in ("sqlite", "neo4j", "cache", "search", "traversal", "discovery", "logging"):
            env_section = getattr(env_config, section)
            if env_section != getattr(default, section):
                final_dict[section] = env_section.model_dump()

        if env_config.graph_backend != default.graph_backend:
            final_dict["graph_backend"] = env_config.graph_backend

        return cls(**final_dict) if final_dict else env_config


# Default config instance
default_config = Config()
