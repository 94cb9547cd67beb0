#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cppcheckdata_mtag/ast_helper.py
═══════════════════════════════

Expression utilities over Cppcheck dump tokens, used by the memory-tag
analysis to simplify and render expressions.

    ┌─────────────────────────────────────────────────────────────────┐
    │  Safe accessors      tok_str, tok_op1, tok_variable, ...        │
    ├─────────────────────────────────────────────────────────────────┤
    │  Traversal           post-order AST walk, statement roots,      │
    │                      token ranges of a scope                    │
    ├─────────────────────────────────────────────────────────────────┤
    │  Classification      calls, casts, address-of, dereference,     │
    │                      member access, plain assignment            │
    ├─────────────────────────────────────────────────────────────────┤
    │  Rendering           strip_expr, expr_to_str, expr_to_var_sym   │
    └─────────────────────────────────────────────────────────────────┘

Rendering is computed from the AST, never from the raw source text, so
two spellings of the same expression that differ only in whitespace or
redundant parentheses render identically.  That is what makes the text
usable as hash input for tags.

Cppcheck AST conventions relied on here
───────────────────────────────────────
* A call ``f(a, b)`` is a ``(`` token with ``astOperand1`` = ``f`` and
  ``astOperand2`` = the comma tree of arguments (absent for ``f()``).
* A cast ``(T *)x`` is a ``(`` token with ``isCast`` set and the operand
  in ``astOperand1``.
* ``p->m`` is a ``.`` token whose ``originalName`` is ``"->"``.
* Grouping parentheses do not appear in the AST.
* Control statements (``if (c)``) also use a ``(`` token whose first
  operand is the keyword.

License: MIT
"""

from __future__ import annotations

from typing import Any, FrozenSet, Iterator, List, Optional, Tuple

# Token, Scope, Variable and Function are cppcheckdata objects; they are
# only ever read through getattr so no import of cppcheckdata is needed.
Token = Any


# ═══════════════════════════════════════════════════════════════════════════
#  CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

# Keywords that Cppcheck represents like a call: ``kw ( ... )``
CALL_LIKE_KEYWORDS: FrozenSet[str] = frozenset({
    'if', 'while', 'for', 'switch', 'return', 'do',
    'sizeof', 'alignof', '_Alignof', 'typeof', '__typeof__', 'decltype',
    'defined', 'catch',
})

BINARY_OPS: FrozenSet[str] = frozenset({
    '+', '-', '*', '/', '%',
    '&', '|', '^', '<<', '>>',
    '==', '!=', '<', '>', '<=', '>=',
    '&&', '||',
    '=', '+=', '-=', '*=', '/=', '%=',
    '&=', '|=', '^=', '<<=', '>>=',
})


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1: SAFE ACCESSORS
# ═══════════════════════════════════════════════════════════════════════════

def tok_str(tok: Token) -> str:
    """String value of *tok*, or ``""`` for ``None``."""
    if tok is None:
        return ""
    return getattr(tok, "str", "") or ""


def tok_op1(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astOperand1", None)


def tok_op2(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astOperand2", None)


def tok_parent(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astParent", None)


def tok_next(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "next", None)


def tok_previous(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "previous", None)


def tok_link(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "link", None)


def tok_variable(tok: Token) -> Optional[Any]:
    """The ``cppcheckdata.Variable`` a name token refers to, if any."""
    if tok is None:
        return None
    return getattr(tok, "variable", None)


def tok_function(tok: Token) -> Optional[Any]:
    """The ``cppcheckdata.Function`` a name token refers to, if any."""
    if tok is None:
        return None
    return getattr(tok, "function", None)


def tok_file(tok: Token) -> str:
    if tok is None:
        return ""
    return getattr(tok, "file", "") or ""


def tok_line(tok: Token) -> int:
    if tok is None:
        return 0
    return int(getattr(tok, "linenr", 0) or 0)


def tok_column(tok: Token) -> int:
    if tok is None:
        return 0
    return int(getattr(tok, "column", 0) or 0)


def variable_name(var: Any) -> Optional[str]:
    """Identifier of a ``cppcheckdata.Variable``; ``None`` when unnamed."""
    if var is None:
        return None
    name = tok_str(getattr(var, "nameToken", None))
    return name or None


def function_name(func: Any) -> Optional[str]:
    """Identifier of a ``cppcheckdata.Function``; ``None`` when unknown."""
    if func is None:
        return None
    name = getattr(func, "name", None)
    if name:
        return name
    return tok_str(getattr(func, "tokenDef", None)) or None


def symbol_key(obj: Any) -> Any:
    """Stable key for a Variable/Function inside one parsed dump."""
    ident = getattr(obj, "Id", None)
    if ident:
        return ident
    return id(obj)


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2: TRAVERSAL
# ═══════════════════════════════════════════════════════════════════════════

def iter_ast_postorder(root: Token) -> Iterator[Token]:
    """
    Iterate over AST nodes in post-order (left, right, root).

    Children are yielded before their parent, so the call inside
    ``x = f(y)`` is seen before the assignment that consumes it.

    Args:
        root: The root token of the AST subtree

    Yields:
        Tokens in post-order sequence
    """
    if root is None:
        return

    # Two-stack algorithm for iterative post-order
    stack1: List[Token] = [root]
    stack2: List[Token] = []

    while stack1:
        node = stack1.pop()
        stack2.append(node)
        op1 = tok_op1(node)
        if op1 is not None:
            stack1.append(op1)
        op2 = tok_op2(node)
        if op2 is not None:
            stack1.append(op2)

    while stack2:
        yield stack2.pop()


def iter_tokens_in_range(start: Token, end: Token) -> Iterator[Token]:
    """Tokens from *start* to *end* inclusive, following ``next``."""
    current = start
    while current is not None:
        yield current
        if current is end:
            break
        current = tok_next(current)


def iter_tokens_in_scope(scope: Any) -> Iterator[Token]:
    """All tokens between a scope's ``bodyStart`` and ``bodyEnd``."""
    if scope is None:
        return
    start = getattr(scope, "bodyStart", None)
    end = getattr(scope, "bodyEnd", None)
    if start is None or end is None:
        return
    yield from iter_tokens_in_range(start, end)


def iter_statement_roots(scope: Any) -> Iterator[Token]:
    """
    Roots of the expression ASTs inside a scope body, in source order.

    A root is a token without ``astParent`` that has at least one operand;
    every AST node in the body belongs to exactly one root.
    """
    for tok in iter_tokens_in_scope(scope):
        if tok_parent(tok) is not None:
            continue
        if tok_op1(tok) is None and tok_op2(tok) is None:
            continue
        yield tok


# ═══════════════════════════════════════════════════════════════════════════
#  PART 3: CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════

def is_leaf(tok: Token) -> bool:
    if tok is None:
        return False
    return tok_op1(tok) is None and tok_op2(tok) is None


def is_identifier(tok: Token) -> bool:
    if tok is None:
        return False
    return bool(getattr(tok, "isName", False))


def is_cast(tok: Token) -> bool:
    if tok is None:
        return False
    return bool(getattr(tok, "isCast", False))


def is_function_call(tok: Token) -> bool:
    """
    Check if a token is the ``(`` of a function call.

    Casts and keyword constructs such as ``if (...)`` or ``sizeof(...)``
    share the ``(`` shape and are excluded.
    """
    if tok is None or tok_str(tok) != '(':
        return False
    op1 = tok_op1(tok)
    if op1 is None or is_cast(tok):
        return False
    return tok_str(op1) not in CALL_LIKE_KEYWORDS


def is_address_of(tok: Token) -> bool:
    """Unary ``&`` (as opposed to bitwise and)."""
    if tok_str(tok) != '&':
        return False
    return tok_op1(tok) is not None and tok_op2(tok) is None


def is_dereference(tok: Token) -> bool:
    """Unary ``*`` (as opposed to multiplication)."""
    if tok_str(tok) != '*':
        return False
    return tok_op1(tok) is not None and tok_op2(tok) is None


def is_member_access(tok: Token) -> bool:
    return tok_str(tok) == '.' and tok_op1(tok) is not None


def member_operator(tok: Token) -> str:
    """``"->"`` or ``"."`` for a member-access token."""
    if getattr(tok, "originalName", "") == "->":
        return "->"
    return "."


def is_plain_assignment(tok: Token) -> bool:
    """``a = b`` with both sides present (compound assignments excluded)."""
    if tok_str(tok) != '=':
        return False
    return tok_op1(tok) is not None and tok_op2(tok) is not None


def struct_name_of(tok: Token) -> Optional[str]:
    """
    Name of the struct/union type of an expression, from its ValueType.

    Pointers to records count too: ``ops`` of type ``struct pci_ops *``
    gives ``"pci_ops"``.
    """
    vt = getattr(tok, "valueType", None) if tok is not None else None
    if vt is None:
        return None
    vtype = getattr(vt, "type", None)
    if vtype and vtype not in ("record", "container"):
        return None
    type_scope = getattr(vt, "typeScope", None)
    class_name = getattr(type_scope, "className", None) if type_scope else None
    if class_name:
        return class_name
    original = getattr(vt, "originalTypeName", "") or ""
    words = [w for w in original.replace("*", " ").split()
             if w not in ("struct", "union", "const", "volatile")]
    return words[-1] if words else None


# ═══════════════════════════════════════════════════════════════════════════
#  PART 4: FUNCTION CALLS
# ═══════════════════════════════════════════════════════════════════════════

def get_called_function_name(call_tok: Token) -> str:
    """
    Name of a directly called function.

    Returns ``""`` unless the callee is a plain identifier: calls through
    member function pointers or dereferenced pointers have no direct name.
    """
    if not is_function_call(call_tok):
        return ""
    op1 = tok_op1(call_tok)
    if is_identifier(op1) and is_leaf(op1):
        return tok_str(op1)
    return ""


def function_pointer_name(member_tok: Token) -> Optional[str]:
    """
    Name of the struct member a function pointer lives in.

    ``ops->probe`` with ``ops`` of type ``struct pci_driver *`` gives
    ``"(struct pci_driver)->probe"``, whichever variable holds the struct.
    """
    if not is_member_access(member_tok) or tok_op2(member_tok) is None:
        return None
    struct = struct_name_of(tok_op1(member_tok))
    if not struct:
        return None
    return f"(struct {struct})->{tok_str(tok_op2(member_tok))}"


def call_target(call_tok: Token) -> Optional[Tuple[str, bool]]:
    """
    Identity of a call's callee as ``(name, is_static)``.

    Direct calls give the function name; calls through a struct member
    give its :func:`function_pointer_name`.  Calls through plain pointer
    variables cannot be named and give ``None``.
    """
    if not is_function_call(call_tok):
        return None
    name = get_called_function_name(call_tok)
    if name:
        callee = tok_op1(call_tok)
        if tok_variable(callee) is not None:
            return None
        func = tok_function(callee)
        return name, bool(getattr(func, "isStatic", False))
    target = strip_expr(tok_op1(call_tok))
    if is_dereference(target):
        target = strip_expr(tok_op1(target))
    ptr_name = function_pointer_name(target)
    if ptr_name:
        return ptr_name, False
    return None


def get_call_arguments(call_tok: Token) -> List[Token]:
    """Argument expression roots of a call, in positional order."""
    if call_tok is None or tok_str(call_tok) != '(':
        return []
    args: List[Token] = []
    _flatten_comma_args(tok_op2(call_tok), args)
    return args


def _flatten_comma_args(tok: Token, out: List[Token]) -> None:
    """
    In Cppcheck AST, f(a, b, c) has astOperand2 as a tree of commas:
        (
         ├─ f
         └─ ,
             ├─ ,
             │   ├─ a
             │   └─ b
             └─ c
    """
    if tok is None:
        return
    if tok_str(tok) == ',':
        _flatten_comma_args(tok_op1(tok), out)
        _flatten_comma_args(tok_op2(tok), out)
    else:
        out.append(tok)


# ═══════════════════════════════════════════════════════════════════════════
#  PART 5: SIMPLIFICATION AND RENDERING
# ═══════════════════════════════════════════════════════════════════════════

def strip_expr(tok: Token) -> Optional[Token]:
    """Remove cast wrappers around an expression."""
    while tok is not None and is_cast(tok):
        tok = tok_op1(tok)
    return tok


def _cast_type_str(cast_tok: Token) -> str:
    close = tok_link(cast_tok)
    if close is not None:
        words = [tok_str(t) for t in iter_tokens_in_range(tok_next(cast_tok), close)
                 if t is not close]
        if words:
            return " ".join(words)
    vt = getattr(cast_tok, "valueType", None)
    return getattr(vt, "originalTypeName", "") or "?"


def _operand_str(tok: Token, max_depth: int) -> str:
    text = expr_to_string(tok, max_depth)
    if tok_str(tok) in BINARY_OPS and tok_op2(tok) is not None:
        return f"({text})"
    if tok_str(tok) == '?':
        return f"({text})"
    return text


def expr_to_string(tok: Token, max_depth: int = 50) -> str:
    """
    Canonical text of an expression AST.

    Nested binary operands are parenthesised, so ``(a + b) * c`` and
    ``a + b * c`` never render alike.

    Args:
        tok: Root of the expression AST
        max_depth: Maximum recursion depth

    Returns:
        String representation of the expression
    """
    if tok is None:
        return ""
    if max_depth <= 0:
        return "..."

    s = tok_str(tok)
    op1 = tok_op1(tok)
    op2 = tok_op2(tok)
    depth = max_depth - 1

    if op1 is None and op2 is None:
        return s

    if is_cast(tok):
        return f"({_cast_type_str(tok)}){expr_to_string(op1, depth)}"

    if s == '(' and op1 is not None:
        args = ", ".join(expr_to_string(a, depth) for a in get_call_arguments(tok))
        return f"{expr_to_string(op1, depth)}({args})"

    if s == '.':
        if op2 is None:
            # designated initializer: .member
            return f".{expr_to_string(op1, depth)}"
        return f"{expr_to_string(op1, depth)}{member_operator(tok)}{tok_str(op2)}"

    if s == '[' and op2 is not None:
        return f"{expr_to_string(op1, depth)}[{expr_to_string(op2, depth)}]"

    if s == '?' and tok_str(op2) == ':':
        cond = _operand_str(op1, depth)
        then_expr = _operand_str(tok_op1(op2), depth)
        else_expr = _operand_str(tok_op2(op2), depth)
        return f"{cond} ? {then_expr} : {else_expr}"

    if s == ',':
        return f"{expr_to_string(op1, depth)}, {expr_to_string(op2, depth)}"

    if op2 is None:
        inner = _operand_str(op1, depth)
        if s in ('++', '--') and op1 is tok_previous(tok):
            return f"{inner}{s}"
        if is_identifier(tok):
            # return x, throw x, new T
            return f"{s} {inner}"
        return f"{s}{inner}"

    if op1 is None:
        return f"{s}{_operand_str(op2, depth)}"

    return f"{_operand_str(op1, depth)} {s} {_operand_str(op2, depth)}"


def expr_to_str(tok: Token) -> str:
    """Canonical text of *tok* after stripping casts."""
    return expr_to_string(strip_expr(tok))


def expr_to_var_sym(tok: Token) -> Tuple[str, Optional[Any]]:
    """
    Render an lvalue-like expression and find the variable it is rooted at.

    ``d``, ``d->dev``, ``d->regs[2]``, ``*pp`` and ``&s.lock`` all resolve to
    the Variable of their base identifier.  Anything else (calls,
    arithmetic, literals) returns its text with ``None``.

    Returns:
        ``(name, variable)``
    """
    tok = strip_expr(tok)
    if tok is None:
        return "", None

    s = tok_str(tok)
    op1 = tok_op1(tok)
    op2 = tok_op2(tok)

    if is_leaf(tok):
        if is_identifier(tok):
            return s, tok_variable(tok)
        return s, None

    if is_member_access(tok) and op2 is not None:
        base, var = expr_to_var_sym(op1)
        if var is not None:
            return f"{base}{member_operator(tok)}{tok_str(op2)}", var

    elif s == '[' and op2 is not None:
        base, var = expr_to_var_sym(op1)
        if var is not None:
            return f"{base}[{expr_to_str(op2)}]", var

    elif is_dereference(tok) or is_address_of(tok):
        base, var = expr_to_var_sym(op1)
        if var is not None:
            return f"{s}{base}", var

    return expr_to_string(tok), None


__all__ = [
    "Token",
    "CALL_LIKE_KEYWORDS",
    "tok_str",
    "tok_op1",
    "tok_op2",
    "tok_parent",
    "tok_next",
    "tok_previous",
    "tok_link",
    "tok_variable",
    "tok_function",
    "tok_file",
    "tok_line",
    "tok_column",
    "variable_name",
    "function_name",
    "symbol_key",
    "iter_ast_postorder",
    "iter_tokens_in_range",
    "iter_tokens_in_scope",
    "iter_statement_roots",
    "is_leaf",
    "is_identifier",
    "is_cast",
    "is_function_call",
    "is_address_of",
    "is_dereference",
    "is_member_access",
    "member_operator",
    "is_plain_assignment",
    "struct_name_of",
    "get_called_function_name",
    "function_pointer_name",
    "call_target",
    "get_call_arguments",
    "strip_expr",
    "expr_to_string",
    "expr_to_str",
    "expr_to_var_sym",
]
