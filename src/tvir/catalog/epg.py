# src/tvir/catalog/epg.py
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional

from tvir.data.types import EpgEntry, ProgramId


class CatalogError(RuntimeError):
    pass


class EpgCatalog:
    """
    Read-only program catalog keyed by ProgramId.

    Only EpgCatalogBuilder.freeze() creates one; there is no way to add or replace
    entries afterwards, so it can be shared freely once rating starts.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[ProgramId, EpgEntry]):
        self._entries: Mapping[ProgramId, EpgEntry] = MappingProxyType(dict(entries))

    def lookup(self, program_id: ProgramId) -> Optional[EpgEntry]:
        """Entry for program_id, or None if the EPG slice doesn't know the program."""
        return self._entries.get(program_id)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, program_id: object) -> bool:
        return program_id in self._entries

    def __iter__(self) -> Iterator[EpgEntry]:
        return iter(self._entries.values())

    def __repr__(self) -> str:
        return f"EpgCatalog(n_programs={len(self._entries)})"

    @classmethod
    def empty(cls) -> "EpgCatalog":
        return cls({})


class EpgCatalogBuilder:
    """
    Mutable ingestion phase of the catalog.

    Seed it with an existing catalog to layer a supplementary EPG on top:
    entries ingested later overwrite same-keyed ones (last write wins).
    """

    def __init__(self, base: Optional[EpgCatalog] = None):
        self._entries: Dict[ProgramId, EpgEntry] = {}
        if base is not None:
            for entry in base:
                self._entries[entry.program_id] = entry
        self._frozen = False

    def ingest(self, entry: EpgEntry) -> None:
        if self._frozen:
            raise CatalogError("catalog builder already frozen")
        if not entry.program_id:
            raise CatalogError("EPG entry without program id")
        self._entries[entry.program_id] = entry

    def ingest_many(self, entries: Iterable[EpgEntry]) -> int:
        n = 0
        for entry in entries:
            self.ingest(entry)
            n += 1
        return n

    def freeze(self) -> EpgCatalog:
        self._frozen = True
        return EpgCatalog(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
