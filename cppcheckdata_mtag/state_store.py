"""
cppcheckdata_mtag/state_store.py
════════════════════════════════

Per-variable analysis state shared by the passes of one function walk.

States are keyed by ``(pass_id, name, symbol)``:

* ``pass_id`` separates unrelated passes, so two passes may track the same
  variable without seeing each other's values;
* ``name`` is the rendered binding (``d``, ``d->dev``, ``*pp``);
* ``symbol`` is the Variable the binding is rooted at.

A pass normally works through a typed view::

    tags = store.slot("mtag", TagState)
    tags.set("d", var, TagState.from_tag(42))
    tags.get("d", var)          # TagState(tag=42, display='42')

The view rejects payloads of any other type, so a state stored by one pass
cannot be read back as another pass's payload.  The engine clears the
whole store at every function entry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Generic, Iterator, Optional, Tuple, Type, TypeVar

from cppcheckdata_mtag.ast_helper import Token, expr_to_var_sym, symbol_key

__all__ = ["StateStore", "PassStates"]

logger = logging.getLogger(__name__)

S = TypeVar("S")

_Key = Tuple[str, str, Any]


class StateStore:
    """Mapping ``(pass_id, name, symbol) → state``; last writer wins."""

    def __init__(self) -> None:
        self._states: Dict[_Key, Any] = {}
        self._symbols: Dict[_Key, Any] = {}

    def __len__(self) -> int:
        return len(self._states)

    def set(self, pass_id: str, name: str, sym: Any, state: Any) -> None:
        key = (pass_id, name, symbol_key(sym))
        self._states[key] = state
        self._symbols[key] = sym
        logger.debug("[%s] %s := %s", pass_id, name, state)

    def get(self, pass_id: str, name: str, sym: Any = None) -> Optional[Any]:
        """
        State bound to *name*.

        Without *sym* the first binding with that name is returned; inside
        one function walk names are unique per variable except for
        shadowing, which callers resolve by passing the symbol.
        """
        if sym is not None:
            return self._states.get((pass_id, name, symbol_key(sym)))
        for (pid, bound_name, _), state in self._states.items():
            if pid == pass_id and bound_name == name:
                return state
        return None

    def get_expr(self, pass_id: str, expr: Token) -> Optional[Any]:
        """State bound to the binding an expression renders to."""
        name, sym = expr_to_var_sym(expr)
        if not name or sym is None:
            return None
        return self.get(pass_id, name, sym)

    def states(self, pass_id: str) -> Iterator[Tuple[str, Any, Any]]:
        """``(name, symbol, state)`` for every binding of a pass."""
        for key, state in self._states.items():
            if key[0] == pass_id:
                yield key[1], self._symbols[key], state

    def clear(self) -> None:
        self._states.clear()
        self._symbols.clear()

    def slot(self, pass_id: str, state_type: Type[S]) -> PassStates[S]:
        return PassStates(self, pass_id, state_type)


class PassStates(Generic[S]):
    """Typed view of one pass's states inside a :class:`StateStore`."""

    __slots__ = ("_store", "pass_id", "state_type")

    def __init__(self, store: StateStore, pass_id: str, state_type: Type[S]) -> None:
        self._store = store
        self.pass_id = pass_id
        self.state_type = state_type

    def _check(self, state: Any) -> Optional[S]:
        if state is None:
            return None
        if not isinstance(state, self.state_type):
            raise TypeError(
                f"pass {self.pass_id!r} holds {type(state).__name__}, "
                f"expected {self.state_type.__name__}"
            )
        return state

    def set(self, name: str, sym: Any, state: S) -> None:
        self._check(state)
        self._store.set(self.pass_id, name, sym, state)

    def get(self, name: str, sym: Any = None) -> Optional[S]:
        return self._check(self._store.get(self.pass_id, name, sym))

    def get_expr(self, expr: Token) -> Optional[S]:
        return self._check(self._store.get_expr(self.pass_id, expr))

    def items(self) -> Iterator[Tuple[str, Any, S]]:
        for name, sym, state in self._store.states(self.pass_id):
            yield name, sym, self._check(state)
