"""Runtime wiring helper for CLI and API."""

from dataclasses import dataclass
from pathlib import Path

from .adapters.idgen import HexId
from .adapters.sqlite_store import SQLiteStore
from .anchors import AnchorService
from .citations.registry import AliasRegistry
from .citations.resolver import AliasCache, CitationResolver
from .config import LectioConfig, load_config
from .library import Library


@dataclass
class Runtime:
    """Container for all wired components."""
    store: SQLiteStore
    cache: AliasCache
    aliases: AliasRegistry
    resolver: CitationResolver
    anchors: AnchorService
    library: Library
    idgen: HexId
    config: LectioConfig


def build_runtime(
    data_dir: Path | None = None,
    db_path: Path | None = None,
    config_path: Path | None = None,
    user: str | None = None,
) -> Runtime:
    """Build and wire all components against one database."""
    config = load_config(config_path=config_path, data_dir=data_dir)

    # CLI args win over config values
    if db_path is None:
        db_path = config.store.db
    if user is None:
        user = config.auth.user

    store = SQLiteStore(db_path=db_path)
    idgen = HexId(nbytes=config.id.bytes)
    cache = AliasCache(store)

    return Runtime(
        store=store,
        cache=cache,
        aliases=AliasRegistry(store, cache, idgen, preset_priority=config.citations.preset_priority),
        resolver=CitationResolver(store, cache),
        anchors=AnchorService(store, idgen),
        library=Library(store, idgen, user_id=user),
        idgen=idgen,
        config=config,
    )
