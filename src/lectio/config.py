"""Configuration loader for lectio.toml."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "lectio.toml"


@dataclass
class StoreConfig:
    """Where the SQLite database lives."""
    db: Path


@dataclass
class ImportConfig:
    """Defaults applied to imported text when front matter is silent."""
    source_type: str = "generic"
    category: str = "custom"


@dataclass
class CitationsConfig:
    """Alias registry settings."""
    preset_priority: int = 100


@dataclass
class IdConfig:
    """ID generation configuration."""
    bytes: int = 6


@dataclass
class AuthConfig:
    """Signed-in user; documents are listed only when one is set."""
    user: str | None = None


@dataclass
class ApiConfig:
    """HTTP server settings."""
    host: str = "127.0.0.1"
    port: int = 8765


@dataclass
class LectioConfig:
    """Complete lectio configuration."""
    store: StoreConfig
    import_: ImportConfig
    citations: CitationsConfig
    id: IdConfig
    auth: AuthConfig
    api: ApiConfig


def load_config(config_path: Path | None = None, data_dir: Path | None = None) -> LectioConfig:
    """
    Load configuration from lectio.toml.

    Search order:
    1. config_path (if provided)
    2. cwd/lectio.toml
    3. data_dir/lectio.toml

    Args:
        config_path: Explicit path to config file
        data_dir: Data directory for fallback search and the default DB location

    Returns:
        LectioConfig with resolved settings
    """
    toml_data: dict[str, Any] = {}

    search_paths = []
    if config_path:
        search_paths.append(config_path)
    search_paths.append(Path.cwd() / CONFIG_FILENAME)
    if data_dir:
        search_paths.append(data_dir / CONFIG_FILENAME)

    for path in search_paths:
        if path.exists():
            with open(path, "rb") as f:
                toml_data = tomllib.load(f)
            break

    base = data_dir or Path(".")
    store_data = toml_data.get("store", {})
    store_config = StoreConfig(db=Path(store_data.get("db", base / ".lectio" / "lectio.sqlite")))

    import_data = toml_data.get("import", {})
    import_config = ImportConfig(
        source_type=import_data.get("source_type", "generic"),
        category=import_data.get("category", "custom"),
    )

    citations_data = toml_data.get("citations", {})
    citations_config = CitationsConfig(
        preset_priority=int(citations_data.get("preset_priority", 100)),
    )

    id_data = toml_data.get("id", {})
    id_config = IdConfig(bytes=id_data.get("bytes", 6))

    auth_data = toml_data.get("auth", {})
    auth_config = AuthConfig(user=auth_data.get("user") or None)

    api_data = toml_data.get("api", {})
    api_config = ApiConfig(
        host=api_data.get("host", "127.0.0.1"),
        port=int(api_data.get("port", 8765)),
    )

    return LectioConfig(
        store=store_config,
        import_=import_config,
        citations=citations_config,
        id=id_config,
        auth=auth_config,
        api=api_config,
    )
