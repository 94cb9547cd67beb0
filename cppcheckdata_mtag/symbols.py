"""
cppcheckdata_mtag/symbols.py
════════════════════════════

Tags for file-scope symbols.

A file-scope variable or function is named by ``"<qualifier> <name>"``:

* ``extern <name>`` for external linkage, so every translation unit that
  declares ``extern int foo;`` gets the same tag;
* ``<source-file> <name>`` for ``static`` linkage, so two file-static
  ``foo`` objects in different files stay distinct.

Block-scope objects and unnamed declarations are not eligible and never
receive a tag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from cppcheckdata_mtag.ast_helper import function_name, variable_name
from cppcheckdata_mtag.tag import derive_tag

__all__ = [
    "EXTERN_QUALIFIER",
    "ToplevelSymbol",
    "toplevel_symbol",
    "toplevel_context",
    "toplevel_tag",
]

EXTERN_QUALIFIER = "extern"


@dataclass(frozen=True)
class ToplevelSymbol:
    """Read-only view of a declared symbol.

    Attributes
    ----------
    name        : identifier, or ``None`` for unnamed declarations
    is_static   : internal (file-static) linkage
    is_toplevel : declared at file scope
    kind        : ``"variable"`` or ``"function"``
    """

    name: Optional[str]
    is_static: bool
    is_toplevel: bool
    kind: str = "variable"

    @property
    def eligible(self) -> bool:
        return bool(self.name) and self.is_toplevel

    def qualifier(self, filename: str) -> str:
        return filename if self.is_static else EXTERN_QUALIFIER


def _is_global_scope(scope: Any) -> bool:
    return scope is not None and getattr(scope, "type", "") == "Global"


def toplevel_symbol(obj: Any) -> Optional[ToplevelSymbol]:
    """
    Build a :class:`ToplevelSymbol` from a ``cppcheckdata.Variable`` or
    ``cppcheckdata.Function``.

    Functions are recognised by their ``argument`` mapping; ``None`` is
    returned for ``None``.
    """
    if obj is None:
        return None

    if hasattr(obj, "argument") or hasattr(obj, "tokenDef"):
        nested_in = getattr(obj, "nestedIn", None)
        return ToplevelSymbol(
            name=function_name(obj),
            is_static=bool(getattr(obj, "isStatic", False)),
            is_toplevel=nested_in is None or _is_global_scope(nested_in),
            kind="function",
        )

    if getattr(obj, "isLocal", False) or getattr(obj, "isArgument", False):
        toplevel = False
    else:
        toplevel = (bool(getattr(obj, "isGlobal", False))
                    or _is_global_scope(getattr(obj, "scope", None)))
    return ToplevelSymbol(
        name=variable_name(obj),
        is_static=bool(getattr(obj, "isStatic", False)),
        is_toplevel=toplevel,
    )


def toplevel_context(symbol: ToplevelSymbol, filename: str) -> Optional[str]:
    """Hash input for an eligible symbol, ``None`` otherwise."""
    if symbol is None or not symbol.eligible:
        return None
    return f"{symbol.qualifier(filename)} {symbol.name}"


def toplevel_tag(symbol: Any, filename: str) -> Optional[int]:
    """
    Tag of a file-scope symbol.

    *symbol* may be a :class:`ToplevelSymbol` or a raw cppcheckdata
    Variable/Function.  *filename* is the translation unit being analysed;
    it only matters for ``static`` symbols.  Pure query: nothing is
    recorded.
    """
    if symbol is not None and not isinstance(symbol, ToplevelSymbol):
        symbol = toplevel_symbol(symbol)
    context = toplevel_context(symbol, filename)
    if context is None:
        return None
    return derive_tag(context)
