"""Configuration file format for ActiveRow."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from activerow.db.base import DEFAULT_DATE_FORMAT, BaseDatabaseAdapter

CONFIG_FILE_NAMES = ("activerow.yaml", "activerow.yml", "activerow.json")


class DuckDBConnection(BaseModel):
    """DuckDB connection configuration."""

    type: Literal["duckdb"] = "duckdb"
    path: str = Field(default=":memory:", description="Path to DuckDB database file or :memory:")


class SQLiteConnection(BaseModel):
    """SQLite connection configuration."""

    type: Literal["sqlite"] = "sqlite"
    path: str = Field(default=":memory:", description="Path to SQLite database file or :memory:")


Connection = DuckDBConnection | SQLiteConnection


class ActiveRowConfig(BaseModel):
    """ActiveRow configuration file format.

    Can be saved as activerow.yaml or activerow.json.

    Example YAML:
        connection:
          type: duckdb
          path: data/app.duckdb
        table_prefix: app_
        date_format: "%Y-%m-%d %H:%M:%S"
    """

    connection: Connection | None = Field(default=None, description="Database connection configuration")
    table_prefix: str = Field(default="", description="Prefix prepended to derived table names")
    date_format: str = Field(default=DEFAULT_DATE_FORMAT, description="strftime format for stored dates")

    def resolve_paths(self, base_dir: Path | None = None) -> "ActiveRowConfig":
        """Resolve a relative database path against ``base_dir``.

        Args:
            base_dir: Base directory for resolving relative paths (defaults to cwd)

        Returns:
            New config with resolved paths
        """
        base = base_dir or Path.cwd()

        connection = self.connection
        if connection and connection.path != ":memory:":
            db_path = Path(connection.path)
            if not db_path.is_absolute():
                db_path = (base / db_path).resolve()
            connection = connection.model_copy(update={"path": str(db_path)})

        return self.model_copy(update={"connection": connection})


def load_config(config_path: Path) -> ActiveRowConfig:
    """Load configuration from YAML or JSON file.

    Args:
        config_path: Path to config file (activerow.yaml or activerow.json)

    Returns:
        Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file format is invalid
    """
    import json

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        import yaml

        with open(config_path) as f:
            data = yaml.safe_load(f)
    elif suffix == ".json":
        with open(config_path) as f:
            data = json.load(f)
    else:
        raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    config = ActiveRowConfig(**(data or {}))

    # Resolve relative paths relative to config file directory
    return config.resolve_paths(config_path.parent)


def find_config(start_dir: Path | None = None) -> Path | None:
    """Find config file by searching up the directory tree.

    Args:
        start_dir: Directory to start searching from (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        for name in CONFIG_FILE_NAMES:
            config_path = current / name
            if config_path.exists():
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def build_connection_string(config: ActiveRowConfig) -> str:
    """Build database connection URL from config.

    Args:
        config: ActiveRow configuration

    Returns:
        Connection URL accepted by :func:`activerow.db.connect`
    """
    if not config.connection:
        return "duckdb:///:memory:"

    if isinstance(config.connection, DuckDBConnection):
        return f"duckdb:///{config.connection.path}"
    elif isinstance(config.connection, SQLiteConnection):
        return f"sqlite:///{config.connection.path}"
    else:
        raise ValueError(f"Unknown connection type: {type(config.connection)}")


def create_adapter(config: ActiveRowConfig) -> BaseDatabaseAdapter:
    """Connect the adapter described by a configuration."""
    from activerow.db import connect

    return connect(
        build_connection_string(config),
        table_prefix=config.table_prefix,
        date_format=config.date_format,
    )
