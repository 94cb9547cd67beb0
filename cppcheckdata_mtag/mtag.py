"""
cppcheckdata_mtag/mtag.py
═════════════════════════

Memory tags: naming pointers so they can be followed across calls.

It is hard to see how a pointer travels through a program.  It would be
useful to know that ``probe()`` and ``remove()`` receive the same
``pci_dev``, or which object is handed to ``open()`` and later to
``close()``, but that information is lost in a call tree full of
function-pointer calls.

The first step is to give specific pointers a name, a *tag*:

* file-scope objects are tagged from their linkage and identifier
  (:mod:`cppcheckdata_mtag.symbols`);
* the result of an interesting allocation (``kmalloc()``, ``kzalloc()``,
  or whatever the configured allow-list holds) is tagged from the
  allocation site: ``"<file> <function> <dest> <call>"``;
* when a tagged pointer is passed to a function, the tag is written to the
  caller summaries, and when the callee is analysed the parameter starts
  out carrying the same tag.

Return-value propagation (tagging ``p = get_dev()`` from the callee's
returns) is not done.

Pass id: ``MtagConfig.pass_id`` (``"mtag"`` by default).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from cppcheckdata_mtag.ast_helper import (
    Token,
    expr_to_string,
    expr_to_var_sym,
    get_call_arguments,
    get_called_function_name,
    is_address_of,
    is_function_call,
    is_identifier,
    is_leaf,
    is_plain_assignment,
    strip_expr,
    tok_function,
    tok_op1,
    tok_op2,
    tok_variable,
)
from cppcheckdata_mtag.config import MtagConfig
from cppcheckdata_mtag.hooks import HookRegistry
from cppcheckdata_mtag.state_store import PassStates
from cppcheckdata_mtag.summary_db import MEMORY_TAG
from cppcheckdata_mtag.symbols import toplevel_symbol, toplevel_tag
from cppcheckdata_mtag.tag import TagState, derive_tag

if TYPE_CHECKING:
    from cppcheckdata_mtag.engine import AnalysisContext

__all__ = [
    "MemoryTagPass",
    "allocation_context",
    "resolve_tag",
]

logger = logging.getLogger(__name__)


def allocation_context(filename: str, function: str, dest: str, source: str) -> str:
    """Hash input for an allocation site."""
    return f"{filename} {function} {dest} {source}"


def resolve_tag(expr: Token, filename: str) -> Optional[int]:
    """
    Tag of ``global`` or ``&global``; ``None`` for any other expression.

    Only a direct reference to a file-scope symbol (after stripping casts
    and one address-of) is resolved.  Member accesses, indexing,
    dereferences and arithmetic are left alone.
    """
    expr = strip_expr(expr)
    if is_address_of(expr):
        expr = strip_expr(tok_op1(expr))
    if expr is None or not is_leaf(expr) or not is_identifier(expr):
        return None
    symbol = tok_variable(expr) or tok_function(expr)
    if symbol is None:
        return None
    return toplevel_tag(symbol, filename)


class MemoryTagPass:
    """
    Assigns and threads memory tags during an analysis session.

    One instance is created per session and bound to the engine's
    :class:`~cppcheckdata_mtag.engine.AnalysisContext`, which tells it the
    current file and function and holds the state and summary stores.
    """

    def __init__(self, ctx: AnalysisContext, config: Optional[MtagConfig] = None) -> None:
        self.ctx = ctx
        self.config = config or MtagConfig()
        self.pass_id = self.config.pass_id

    def __repr__(self) -> str:
        return f"<MemoryTagPass {self.pass_id!r} allocs={sorted(self.config.alloc_functions)}>"

    @property
    def tags(self) -> PassStates[TagState]:
        return self.ctx.states.slot(self.pass_id, TagState)

    def register(self, registry: HookRegistry) -> None:
        registry.add_declaration_hook(self.global_variable)
        for fn_name in sorted(self.config.alloc_functions):
            registry.add_function_assign_hook(fn_name, self.alloc_assign)
        registry.add_call_hook(self.match_call_info)
        registry.add_caller_info_hook(MEMORY_TAG, self.save_caller_info)
        logger.debug("Registered %r", self)

    # ── file-scope symbols ───────────────────────────────────────────

    def toplevel_tag(self, symbol: Any) -> Optional[int]:
        return toplevel_tag(symbol, self.ctx.filename)

    def global_variable(self, symbol: Any) -> None:
        sym = toplevel_symbol(symbol)
        tag = toplevel_tag(sym, self.ctx.filename)
        if tag is None:
            return
        self.ctx.db.insert_metadata(tag, sym.name, sym.qualifier(self.ctx.filename))

    def resolve_tag(self, expr: Token) -> Optional[int]:
        return resolve_tag(expr, self.ctx.filename)

    # ── allocation sites ─────────────────────────────────────────────

    def alloc_assign(self, fn_name: str, expr: Token, data: Any = None) -> None:
        if not is_plain_assignment(expr):
            return
        left = strip_expr(tok_op1(expr))
        right = strip_expr(tok_op2(expr))
        if not is_function_call(right) or not get_called_function_name(right):
            return

        function = self.ctx.function_name
        if not function:
            return

        left_name, left_sym = expr_to_var_sym(left)
        if not left_name or left_sym is None:
            logger.debug("%s(): %s() result not stored in a variable",
                         function, fn_name)
            return
        right_name = expr_to_string(right)

        tag = derive_tag(allocation_context(self.ctx.filename, function,
                                            left_name, right_name))
        self.ctx.db.insert_metadata(tag, left_name, right_name)
        self.tags.set(left_name, left_sym, TagState.from_tag(tag))

    # ── caller → callee ──────────────────────────────────────────────

    def match_call_info(self, call: Token) -> None:
        site = None
        for i, arg in enumerate(get_call_arguments(call)):
            state = self.tags.get_expr(arg)
            if state is None:
                continue
            if site is None:
                site = self.ctx.call_site(call)
                if site is None:
                    return
            self.ctx.db.insert_caller_summary(site, i, MEMORY_TAG, "$", state.display)

    def save_caller_info(self, name: str, sym: Any, key: str, value: str) -> None:
        if not key.startswith("$"):
            return
        try:
            state = TagState.from_text(value)
        except ValueError:
            logger.debug("%s: ignoring malformed tag %r", name, value)
            return
        self.tags.set(f"{name}{key[1:]}", sym, state)
