"""
cppcheckdata_mtag/summary_db.py
═══════════════════════════════

Append-only store for tag metadata and interprocedural summaries.

Three tables are kept:

``metadata``
    :class:`TagMetadata`: what a tag stands for (``d`` / ``alloc_dev()``,
    or ``jiffies`` / ``extern``), kept for reports.
``caller_info``
    :class:`CallerSummaryEntry`: "argument *n* of this call site carried
    tag *T*".  Read back when the callee is analysed.
``function_ptrs``
    :class:`FunctionPointerLink`: "function ``foo_probe`` is stored in
    ``(struct pci_driver)->probe``", so summaries recorded for calls
    through that member reach ``foo_probe``.

Rows are frozen dataclasses and the store has no update or delete
operation.  Inserting a row equal to one already stored is a no-op, so a
dump walked once per Cppcheck configuration still yields one row per
call site and argument.  ``save()`` / ``load()`` persist the store as a
JSON document; tags appear there as decimal text, nowhere else.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from cppcheckdata_mtag.errors import SummaryStoreError
from cppcheckdata_mtag.tag import format_tag, parse_tag

__all__ = [
    "MEMORY_TAG",
    "FORMAT_VERSION",
    "TagMetadata",
    "CallSite",
    "CallerSummaryEntry",
    "FunctionPointerLink",
    "SummaryStore",
]

logger = logging.getLogger(__name__)

#: ``kind`` of caller-summary rows written by the memory-tag pass.
MEMORY_TAG = "tag"

FORMAT_VERSION = 1


# ═════════════════════════════════════════════════════════════════════════
#  RECORDS
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TagMetadata:
    tag: int
    label: str
    origin: str


@dataclass(frozen=True)
class CallSite:
    """Where a call happens and what it calls.

    ``callee`` is the function name for direct calls, or a pointer name
    such as ``(struct pci_driver)->probe`` for calls through a struct
    member.  ``static`` is set when the callee has internal linkage.
    """
    file: str
    caller: str
    callee: str
    static: bool = False
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}: {self.caller}() -> {self.callee}()"


@dataclass(frozen=True)
class CallerSummaryEntry:
    call_site: CallSite
    param: int
    kind: str
    key: str
    value: str


@dataclass(frozen=True)
class FunctionPointerLink:
    file: str
    function: str
    ptr_name: str
    static: bool = False


# ═════════════════════════════════════════════════════════════════════════
#  STORE
# ═════════════════════════════════════════════════════════════════════════

class SummaryStore:
    """In-memory, append-only summary database."""

    def __init__(self) -> None:
        self._metadata: List[TagMetadata] = []
        self._caller_info: List[CallerSummaryEntry] = []
        self._function_ptrs: List[FunctionPointerLink] = []
        self._seen: Set[Any] = set()

    def __repr__(self) -> str:
        return (f"<SummaryStore metadata={len(self._metadata)} "
                f"caller_info={len(self._caller_info)} "
                f"function_ptrs={len(self._function_ptrs)}>")

    # ── inserts ──────────────────────────────────────────────────────

    def _add(self, table: List[Any], row: Any) -> bool:
        if row in self._seen:
            return False
        self._seen.add(row)
        table.append(row)
        return True

    def insert_metadata(self, tag: int, label: str, origin: str) -> TagMetadata:
        row = TagMetadata(tag=tag, label=label, origin=origin)
        self._add(self._metadata, row)
        return row

    def insert_caller_summary(
        self,
        call_site: CallSite,
        param: int,
        kind: str,
        key: str,
        value: str,
    ) -> CallerSummaryEntry:
        row = CallerSummaryEntry(call_site=call_site, param=param,
                                 kind=kind, key=key, value=value)
        if self._add(self._caller_info, row):
            logger.debug("caller_info %s param %d %s %s = %s",
                         call_site, param, kind, key, value)
        return row

    def insert_function_pointer(
        self, file: str, function: str, ptr_name: str, static: bool = False,
    ) -> FunctionPointerLink:
        row = FunctionPointerLink(file=file, function=function,
                                  ptr_name=ptr_name, static=static)
        self._add(self._function_ptrs, row)
        return row

    # ── queries ──────────────────────────────────────────────────────

    def metadata(self) -> Tuple[TagMetadata, ...]:
        return tuple(self._metadata)

    def caller_info(self) -> Tuple[CallerSummaryEntry, ...]:
        return tuple(self._caller_info)

    def function_ptrs(self) -> Tuple[FunctionPointerLink, ...]:
        return tuple(self._function_ptrs)

    def lookup_tag(self, tag: int) -> List[TagMetadata]:
        return [row for row in self._metadata if row.tag == tag]

    def function_pointers(self, function: str, filename: str,
                          is_static: bool = False) -> Set[str]:
        """Pointer names that *function* (defined in *filename*) was stored in."""
        return {
            link.ptr_name
            for link in self._function_ptrs
            if link.function == function
            and (not (link.static or is_static) or link.file == filename)
        }

    def caller_summaries(
        self,
        function: str,
        filename: str,
        is_static: bool = False,
        kind: Optional[str] = None,
    ) -> List[CallerSummaryEntry]:
        """
        Caller rows that apply to *function* defined in *filename*.

        Direct calls match by name; when either side has internal linkage
        the call must come from the same file.  Calls through a function
        pointer match every pointer name linked to the function.
        """
        ptr_names = self.function_pointers(function, filename, is_static)
        rows = []
        for row in self._caller_info:
            if kind is not None and row.kind != kind:
                continue
            site = row.call_site
            if site.callee == function:
                if (site.static or is_static) and site.file != filename:
                    continue
                rows.append(row)
            elif site.callee in ptr_names:
                rows.append(row)
        return rows

    # ── persistence ──────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": FORMAT_VERSION,
            "metadata": [
                {"tag": format_tag(r.tag), "label": r.label, "origin": r.origin}
                for r in self._metadata
            ],
            "caller_info": [
                {**asdict(r.call_site), "param": r.param, "kind": r.kind,
                 "key": r.key, "value": r.value}
                for r in self._caller_info
            ],
            "function_ptrs": [asdict(r) for r in self._function_ptrs],
        }

    @classmethod
    def from_dict(cls, doc: Dict[str, Any], path: Optional[str] = None) -> SummaryStore:
        if not isinstance(doc, dict):
            raise SummaryStoreError("top level must be an object", path=path)
        version = doc.get("version")
        if version != FORMAT_VERSION:
            raise SummaryStoreError(
                f"unsupported format version {version!r}", path=path,
                hint=f"expected {FORMAT_VERSION}",
            )
        store = cls()
        try:
            for r in doc.get("metadata", []):
                store.insert_metadata(parse_tag(r["tag"]), r["label"], r["origin"])
            for r in doc.get("caller_info", []):
                site = CallSite(
                    file=r["file"], caller=r["caller"], callee=r["callee"],
                    static=bool(r.get("static", False)),
                    line=int(r.get("line", 0)), column=int(r.get("column", 0)),
                )
                store._add(store._caller_info, CallerSummaryEntry(
                    call_site=site, param=int(r["param"]), kind=r["kind"],
                    key=r["key"], value=r["value"],
                ))
            for r in doc.get("function_ptrs", []):
                store.insert_function_pointer(
                    r["file"], r["function"], r["ptr_name"],
                    bool(r.get("static", False)),
                )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise SummaryStoreError(f"malformed row: {exc}", path=path) from exc
        return store

    def save(self, path: Union[str, Path]) -> None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        with open(p, "w", encoding="utf-8") as fh:
            json.dump(self.to_dict(), fh, indent=2)
        logger.info("Saved %r to %s", self, p)

    @classmethod
    def load(cls, path: Union[str, Path]) -> SummaryStore:
        p = Path(path)
        try:
            with open(p, encoding="utf-8") as fh:
                doc = json.load(fh)
        except OSError as exc:
            raise SummaryStoreError(f"cannot read: {exc}", path=str(p)) from exc
        except json.JSONDecodeError as exc:
            raise SummaryStoreError(f"invalid JSON: {exc}", path=str(p)) from exc
        return cls.from_dict(doc, path=str(p))
