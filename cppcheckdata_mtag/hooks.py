"""
cppcheckdata_mtag/hooks.py
══════════════════════════

Registry of the callbacks the analysis engine dispatches to.

Lifecycle
─────────
  1. **set-up**    : passes call ``add_*`` (normally from their single
                     ``register()`` entry point)
  2. ``freeze()``  : the engine starts walking code; the registry is
                     read-only from here on
  3. ``clear()``   : session teardown; the registry may be reused

Hook kinds
──────────
  declaration      cb(symbol)                     file-scope variable/function
  function assign  cb(fn_name, assign_tok, data)  ``x = fn_name(...)``
  call             cb(call_tok)                   every call expression
  caller info      cb(name, sym, key, value)      summaries for a parameter
  function end     cb(function, states)           after a body was walked
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, List, Protocol, Tuple

from cppcheckdata_mtag.errors import HookRegistryError

__all__ = [
    "DeclarationHook",
    "FunctionAssignHook",
    "CallHook",
    "CallerInfoHook",
    "FunctionEndHook",
    "HookRegistry",
]

logger = logging.getLogger(__name__)


class DeclarationHook(Protocol):
    def __call__(self, symbol: Any) -> None: ...


class FunctionAssignHook(Protocol):
    def __call__(self, fn_name: str, assign_tok: Any, data: Any) -> None: ...


class CallHook(Protocol):
    def __call__(self, call_tok: Any) -> None: ...


class CallerInfoHook(Protocol):
    def __call__(self, name: str, sym: Any, key: str, value: str) -> None: ...


class FunctionEndHook(Protocol):
    def __call__(self, function: Any, states: Any) -> None: ...


class HookRegistry:
    """
    Process-scoped table of analysis callbacks.

    Usage
    -----
    >>> registry = HookRegistry()
    >>> registry.add_function_assign_hook("kmalloc", on_alloc)
    >>> registry.add_call_hook(on_call)
    >>> registry.freeze()
    """

    def __init__(self) -> None:
        self._frozen = False
        self._declaration: List[DeclarationHook] = []
        self._function_assign: Dict[str, List[Tuple[FunctionAssignHook, Any]]] = defaultdict(list)
        self._call: List[CallHook] = []
        self._caller_info: Dict[str, List[CallerInfoHook]] = defaultdict(list)
        self._function_end: List[FunctionEndHook] = []

    def __repr__(self) -> str:
        return (f"<HookRegistry frozen={self._frozen} "
                f"assign={sorted(self._function_assign)} "
                f"caller_info={sorted(self._caller_info)}>")

    # ── lifecycle ────────────────────────────────────────────────────

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True
        logger.debug("Frozen %r", self)

    def clear(self) -> None:
        self._declaration.clear()
        self._function_assign.clear()
        self._call.clear()
        self._caller_info.clear()
        self._function_end.clear()
        self._frozen = False

    def _check_open(self, what: str) -> None:
        if self._frozen:
            raise HookRegistryError(
                f"cannot add {what} hook: registry is frozen",
                hint="register passes before the analysis starts",
            )

    # ── registration ─────────────────────────────────────────────────

    def add_declaration_hook(self, cb: DeclarationHook) -> None:
        self._check_open("declaration")
        self._declaration.append(cb)

    def add_function_assign_hook(self, fn_name: str, cb: FunctionAssignHook,
                                 data: Any = None) -> None:
        self._check_open("function assign")
        self._function_assign[fn_name].append((cb, data))

    def add_call_hook(self, cb: CallHook) -> None:
        self._check_open("call")
        self._call.append(cb)

    def add_caller_info_hook(self, kind: str, cb: CallerInfoHook) -> None:
        self._check_open("caller info")
        self._caller_info[kind].append(cb)

    def add_function_end_hook(self, cb: FunctionEndHook) -> None:
        self._check_open("function end")
        self._function_end.append(cb)

    # ── lookup (engine side) ─────────────────────────────────────────

    def declaration_hooks(self) -> List[DeclarationHook]:
        return list(self._declaration)

    def function_assign_hooks(self, fn_name: str) -> List[Tuple[FunctionAssignHook, Any]]:
        return list(self._function_assign.get(fn_name, ()))

    def has_function_assign_hook(self, fn_name: str) -> bool:
        return bool(self._function_assign.get(fn_name))

    def call_hooks(self) -> List[CallHook]:
        return list(self._call)

    def caller_info_kinds(self) -> List[str]:
        return [kind for kind, hooks in self._caller_info.items() if hooks]

    def caller_info_hooks(self, kind: str) -> List[CallerInfoHook]:
        return list(self._caller_info.get(kind, ()))

    def function_end_hooks(self) -> List[FunctionEndHook]:
        return list(self._function_end)
