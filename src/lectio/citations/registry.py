"""Citation alias registry: validated CRUD, presets and export/import."""

import re
import time
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Callable

from ..core.model import CitationAlias, NumberExtractor
from ..core.ports import AliasStore, IdGenerator
from .presets import get_preset
from .resolver import AliasCache

EXPORT_VERSION = 1

_ALIAS_FIELDS = {f.name for f in fields(CitationAlias)}
_UPDATABLE = _ALIAS_FIELDS - {"id", "created_at", "updated_at"}


@dataclass(frozen=True)
class ImportCounts:
    added: int
    updated: int
    skipped: int = 0


def is_valid_pattern(pattern: str) -> bool:
    try:
        re.compile(pattern)
    except re.error:
        return False
    return True


class AliasRegistry:
    """
    Aliases map a short prefix ("CCC") and regex to one document. Prefixes
    are unique registry-wide, compared case-insensitively. Rejected
    mutations return None/False and leave the store untouched.
    """

    def __init__(
        self,
        store: AliasStore,
        cache: AliasCache,
        idgen: IdGenerator,
        preset_priority: int = 100,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.cache = cache
        self.idgen = idgen
        self.preset_priority = preset_priority
        self.clock = clock

    # -- queries -----------------------------------------------------------

    def list_all(self) -> list[CitationAlias]:
        return self.store.list_aliases()

    def list_for_document(self, document_id: str) -> list[CitationAlias]:
        return [a for a in self.store.list_aliases() if a.document_id == document_id]

    def get(self, alias_id: str) -> CitationAlias | None:
        return self.store.get_alias(alias_id)

    def get_by_prefix(self, prefix: str) -> CitationAlias | None:
        wanted = prefix.strip().lower()
        for alias in self.store.list_aliases():
            if alias.prefix.lower() == wanted:
                return alias
        return None

    def is_prefix_in_use(self, prefix: str, exclude_id: str | None = None) -> bool:
        wanted = prefix.strip().lower()
        return any(
            a.prefix.lower() == wanted and a.id != exclude_id for a in self.store.list_aliases()
        )

    # -- mutations ---------------------------------------------------------

    def create(
        self,
        document_id: str,
        prefix: str,
        pattern: str,
        number_extractor: NumberExtractor,
        display_format: str,
        priority: int = 0,
        custom_group_index: int | None = None,
    ) -> str | None:
        prefix = prefix.strip()
        if not prefix or self.is_prefix_in_use(prefix) or not is_valid_pattern(pattern):
            return None

        now = self.clock()
        alias = CitationAlias(
            id=self.idgen.new_id(),
            document_id=document_id,
            prefix=prefix,
            pattern=pattern,
            number_extractor=number_extractor,
            display_format=display_format,
            priority=priority,
            custom_group_index=custom_group_index,
            created_at=now,
            updated_at=now,
        )
        self.store.add_alias(alias)
        self.cache.invalidate()
        return alias.id

    def update(self, alias_id: str, **changes: Any) -> bool:
        alias = self.store.get_alias(alias_id)
        if alias is None:
            return False

        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise TypeError(f"Cannot update alias field(s): {', '.join(sorted(unknown))}")

        if "prefix" in changes:
            changes["prefix"] = str(changes["prefix"]).strip()
            if not changes["prefix"] or self.is_prefix_in_use(changes["prefix"], exclude_id=alias_id):
                return False
        if "pattern" in changes and not is_valid_pattern(changes["pattern"]):
            return False

        self.store.put_alias(replace(alias, **changes, updated_at=self.clock()))
        self.cache.invalidate()
        return True

    def delete(self, alias_id: str) -> bool:
        if not self.store.delete_alias(alias_id):
            return False
        self.cache.invalidate()
        return True

    def delete_for_document(self, document_id: str) -> int:
        removed = 0
        for alias in self.list_for_document(document_id):
            if self.store.delete_alias(alias.id):
                removed += 1
        if removed:
            self.cache.invalidate()
        return removed

    def create_from_preset(
        self,
        document_id: str,
        preset_id: str,
        custom_prefix: str | None = None,
    ) -> str | None:
        """
        Instantiate a preset for a document. A custom prefix replaces the
        preset's default prefix in both pattern and display format.
        """
        preset = get_preset(preset_id)
        if preset is None:
            return None

        prefix = (custom_prefix or preset.default_prefix).strip()
        if not prefix:
            return None

        if preset.default_pattern:
            pattern = preset.default_pattern
            display_format = preset.display_format
            if prefix != preset.default_prefix:
                pattern = pattern.replace(re.escape(preset.default_prefix), re.escape(prefix), 1)
                display_format = display_format.replace(preset.default_prefix, prefix)
        else:
            pattern = rf"({re.escape(prefix)})\s*(\d+)"
            display_format = preset.display_format

        return self.create(
            document_id=document_id,
            prefix=prefix,
            pattern=pattern,
            number_extractor=preset.number_extractor,
            display_format=display_format,
            priority=self.preset_priority,
        )

    # -- export / import ---------------------------------------------------

    def export_aliases(self) -> dict[str, Any]:
        return {
            "version": EXPORT_VERSION,
            "exported_at": self.clock(),
            "aliases": [asdict(a) for a in self.store.list_aliases()],
        }

    def import_aliases(self, data: dict[str, Any]) -> ImportCounts:
        """
        Merge an export into the store by alias id. Unknown ids are added;
        known ids are overwritten only when the incoming copy is newer. An
        alias whose prefix belongs to a different id is skipped.
        """
        if data.get("version") != EXPORT_VERSION:
            raise ValueError(f"Unsupported alias export version: {data.get('version')!r}")

        added = updated = skipped = 0
        for raw in data.get("aliases", []):
            alias = CitationAlias(**{k: v for k, v in raw.items() if k in _ALIAS_FIELDS})
            if self.is_prefix_in_use(alias.prefix, exclude_id=alias.id):
                skipped += 1
                continue
            existing = self.store.get_alias(alias.id)
            if existing is None:
                self.store.add_alias(alias)
                added += 1
            elif alias.updated_at > existing.updated_at:
                self.store.put_alias(alias)
                updated += 1

        if added or updated:
            self.cache.invalidate()
        return ImportCounts(added=added, updated=updated, skipped=skipped)
