"""
cppcheckdata_mtag/engine.py
===========================

Walks Cppcheck dump data and dispatches to the registered hooks.

Walk order for one configuration
--------------------------------
1. declaration hooks for every file-scope variable and function;
2. function-pointer links: ``x.member = func`` / ``.member = func``
   assignments anywhere in the token list are recorded as
   ``(struct T)->member`` → ``func``;
3. every ``Function`` scope, one at a time:
   * the state store is cleared,
   * caller-info hooks receive the summaries recorded for this function
     by the previous pass,
   * each statement AST is walked post-order: call hooks fire on every
     call, function-assign hooks on ``x = alloc(...)`` once the call inside
     has been seen,
   * function-end hooks observe the final states.

Two-phase protocol
------------------
Summaries written while walking a caller are only useful once the callee
is walked *after* they exist, and the callee may live in a translation
unit that was walked first.  :class:`AnalysisSession` therefore walks all
dumps ``passes`` times; pass *n* reads the store written by pass *n - 1*
and writes a fresh one.  Each extra pass carries tags one call level
deeper.

Typical usage
-------------
    >>> import cppcheckdata
    >>> from cppcheckdata_mtag.engine import AnalysisSession, DumpUnit
    >>> units = [DumpUnit.from_path(p, cppcheckdata.parsedump(p))
    ...          for p in ("drv.c.dump", "core.c.dump")]
    >>> store = AnalysisSession().run(units)
    >>> for row in store.metadata():
    ...     print(row.tag, row.label, row.origin)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from cppcheckdata_mtag.ast_helper import (
    Token,
    call_target,
    function_name,
    function_pointer_name,
    get_called_function_name,
    is_address_of,
    is_function_call,
    is_identifier,
    is_leaf,
    is_member_access,
    is_plain_assignment,
    iter_ast_postorder,
    iter_statement_roots,
    strip_expr,
    struct_name_of,
    tok_column,
    tok_file,
    tok_function,
    tok_line,
    tok_op1,
    tok_op2,
    tok_parent,
    tok_str,
    tok_variable,
    variable_name,
)
from cppcheckdata_mtag.config import MtagConfig
from cppcheckdata_mtag.hooks import HookRegistry
from cppcheckdata_mtag.mtag import MemoryTagPass
from cppcheckdata_mtag.state_store import StateStore
from cppcheckdata_mtag.summary_db import CallSite, SummaryStore
from cppcheckdata_mtag.symbols import toplevel_symbol

__all__ = [
    "AnalysisContext",
    "AnalysisEngine",
    "AnalysisSession",
    "DumpUnit",
]

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# §1  CONTEXT
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class AnalysisContext:
    """
    What the passes can see while the engine walks code.

    Attributes
    ----------
    states   : per-variable states of the function being walked
    db       : summary store written by the current pass
    previous : summary store written by the previous pass (read-only)
    filename : source file of the translation unit being walked
    function : ``cppcheckdata.Function`` being walked, ``None`` at file scope
    """
    states: StateStore = field(default_factory=StateStore)
    db: SummaryStore = field(default_factory=SummaryStore)
    previous: SummaryStore = field(default_factory=SummaryStore)
    filename: str = ""
    function: Any = None

    @property
    def function_name(self) -> Optional[str]:
        return function_name(self.function)

    def call_site(self, call_tok: Token) -> Optional[CallSite]:
        """Identity of a call made from the current function."""
        target = call_target(call_tok)
        if target is None:
            return None
        callee, static = target
        return CallSite(
            file=self.filename,
            caller=self.function_name or "",
            callee=callee,
            static=static,
            line=tok_line(call_tok),
            column=tok_column(call_tok),
        )


@dataclass(frozen=True)
class DumpUnit:
    """A parsed dump together with the source file it describes."""
    data: Any
    filename: str = ""

    @classmethod
    def from_path(cls, dump_path: str, data: Any) -> DumpUnit:
        filename = dump_path[:-len(".dump")] if dump_path.endswith(".dump") else dump_path
        return cls(data=data, filename=translation_unit_name(data, filename))


def translation_unit_name(data: Any, fallback: str = "") -> str:
    """Main source file of a dump: ``data.files[0]``, else *fallback*,
    else the file of the first token."""
    files = getattr(data, "files", None)
    if files:
        first = files[0]
        return getattr(first, "name", first) if not isinstance(first, str) else first
    if fallback:
        return fallback
    for cfg in _configurations(data):
        tokens = getattr(cfg, "tokenlist", None) or []
        if tokens:
            return tok_file(tokens[0])
    return ""


def _configurations(data: Any) -> List[Any]:
    return list(getattr(data, "configurations", None) or [])


# ═══════════════════════════════════════════════════════════════════════════
# §2  ENGINE
# ═══════════════════════════════════════════════════════════════════════════

class AnalysisEngine:
    """Dispatches hooks for one pass over any number of dumps."""

    def __init__(self, registry: HookRegistry, ctx: AnalysisContext) -> None:
        self.registry = registry
        self.ctx = ctx
        self.functions_walked = 0

    def analyze_dump(self, data: Any, filename: Optional[str] = None) -> None:
        filename = filename or translation_unit_name(data)
        for cfg in _configurations(data):
            self.analyze_configuration(cfg, filename)

    def analyze_configuration(self, cfg: Any, filename: str) -> None:
        self.ctx.filename = filename
        self.ctx.function = None
        logger.debug("Walking %s (%s)", filename, getattr(cfg, "name", "") or "default")

        for symbol in self._toplevel_symbols(cfg):
            for hook in self.registry.declaration_hooks():
                hook(symbol)

        self._record_function_pointers(cfg)

        for scope in getattr(cfg, "scopes", None) or []:
            if getattr(scope, "type", "") == "Function":
                self._analyze_function(scope)

    # ── file scope ───────────────────────────────────────────────────

    @staticmethod
    def _toplevel_symbols(cfg: Any) -> Iterator[Any]:
        for obj in list(getattr(cfg, "variables", None) or []) + \
                list(getattr(cfg, "functions", None) or []):
            sym = toplevel_symbol(obj)
            if sym is not None and sym.is_toplevel:
                yield obj

    def _record_function_pointers(self, cfg: Any) -> None:
        for tok in getattr(cfg, "tokenlist", None) or []:
            if not is_plain_assignment(tok):
                continue
            func = _assigned_function(tok_op2(tok))
            if func is None:
                continue
            ptr_name = _member_pointer_name(tok)
            name = function_name(func)
            if ptr_name and name:
                self.ctx.db.insert_function_pointer(
                    self.ctx.filename, name, ptr_name,
                    bool(getattr(func, "isStatic", False)),
                )

    # ── function bodies ──────────────────────────────────────────────

    def _analyze_function(self, scope: Any) -> None:
        func = getattr(scope, "function", None)
        if func is None:
            return
        self.ctx.states.clear()
        self.ctx.function = func
        self.functions_walked += 1

        self._resolve_caller_info(func)

        for root in iter_statement_roots(scope):
            for tok in iter_ast_postorder(root):
                if is_function_call(tok):
                    for hook in self.registry.call_hooks():
                        hook(tok)
                if is_plain_assignment(tok):
                    self._dispatch_assign(tok)

        for hook in self.registry.function_end_hooks():
            hook(func, self.ctx.states)
        self.ctx.function = None

    def _dispatch_assign(self, tok: Token) -> None:
        right = strip_expr(tok_op2(tok))
        fn_name = get_called_function_name(right)
        if not fn_name or not self.registry.has_function_assign_hook(fn_name):
            return
        for hook, data in self.registry.function_assign_hooks(fn_name):
            hook(fn_name, tok, data)

    def _resolve_caller_info(self, func: Any) -> None:
        name = function_name(func)
        kinds = self.registry.caller_info_kinds()
        if not name or not kinds:
            return
        is_static = bool(getattr(func, "isStatic", False))

        for kind in kinds:
            values: Dict[Tuple[int, str], Set[str]] = defaultdict(set)
            for row in self.ctx.previous.caller_summaries(
                    name, self.ctx.filename, is_static, kind):
                values[(row.param, row.key)].add(row.value)

            for (param, key), found in sorted(values.items()):
                if len(found) > 1:
                    logger.debug("%s(): callers disagree on parameter %d %s, skipped",
                                 name, param, key)
                    continue
                arg = _parameter(func, param)
                arg_name = variable_name(arg)
                if not arg_name:
                    continue
                value = next(iter(found))
                for hook in self.registry.caller_info_hooks(kind):
                    hook(arg_name, arg, key, value)


def _parameter(func: Any, index: int) -> Optional[Any]:
    """Zero-based parameter of a Function (cppcheck numbers them from 1)."""
    arguments = getattr(func, "argument", None) or {}
    return arguments.get(index + 1)


def _assigned_function(rhs: Token) -> Optional[Any]:
    rhs = strip_expr(rhs)
    if is_address_of(rhs):
        rhs = strip_expr(tok_op1(rhs))
    if rhs is None or not is_leaf(rhs) or not is_identifier(rhs):
        return None
    if tok_variable(rhs) is not None:
        return None
    return tok_function(rhs)


def _member_pointer_name(assign_tok: Token) -> Optional[str]:
    lhs = tok_op1(assign_tok)
    if not is_member_access(lhs):
        return None
    if tok_op2(lhs) is not None:
        return function_pointer_name(lhs)

    # designated initializer: { .member = func }; the struct type is the
    # one of the variable being initialized
    member = tok_str(tok_op1(lhs))
    parent = tok_parent(assign_tok)
    while parent is not None:
        if tok_str(parent) == '=' and tok_variable(tok_op1(parent)) is not None:
            struct = struct_name_of(tok_op1(parent))
            return f"(struct {struct})->{member}" if struct else None
        parent = tok_parent(parent)
    return None


# ═══════════════════════════════════════════════════════════════════════════
# §3  SESSION
# ═══════════════════════════════════════════════════════════════════════════

class AnalysisSession:
    """
    One memory-tag analysis over a set of translation units.

    The memory-tag pass is registered exactly once, when :meth:`run`
    starts; extra hooks (for example function-end observers) may be added
    to *registry* before that.  The registry is cleared when the run ends.
    """

    def __init__(self, config: Optional[MtagConfig] = None,
                 registry: Optional[HookRegistry] = None) -> None:
        self.config = (config or MtagConfig()).checked()
        self.registry = registry if registry is not None else HookRegistry()
        self.ctx = AnalysisContext()
        self.mtag = MemoryTagPass(self.ctx, self.config)

    def run(self, units: Sequence[DumpUnit],
            seed: Optional[SummaryStore] = None) -> SummaryStore:
        """
        Walk *units* ``config.passes`` times and return the last store.

        *seed* stands in for the output of a pass before the first one,
        e.g. a store saved by an earlier run.
        """
        self.ctx.previous = seed if seed is not None else SummaryStore()
        self.mtag.register(self.registry)
        self.registry.freeze()
        try:
            for number in range(1, self.config.passes + 1):
                self.ctx.db = SummaryStore()
                engine = AnalysisEngine(self.registry, self.ctx)
                for unit in units:
                    engine.analyze_dump(unit.data, unit.filename or None)
                logger.info("Pass %d/%d: %d function(s), %r", number,
                            self.config.passes, engine.functions_walked, self.ctx.db)
                self.ctx.previous = self.ctx.db
        finally:
            self.ctx.states.clear()
            self.registry.clear()
        return self.ctx.db
