# tests/conftest.py
"""
Mock Cppcheck dump objects and AST builders shared by the test suite.

The mocks expose only the attributes the analysis reads; anything not set
explicitly keeps a neutral default (``None``, ``False``, ``""``).  Builders
wire ``astOperand1``/``astOperand2``/``astParent`` the way Cppcheck does,
and :func:`make_body` lays statements out as a linked token list between
``{`` and ``}`` so scope walks find them.
"""

import itertools

import pytest

_ids = itertools.count(1)


# ── Mock Cppcheck objects ────────────────────────────────────────

class MockToken:
    _DEFAULTS = {
        "str": "",
        "next": None,
        "previous": None,
        "link": None,
        "astParent": None,
        "astOperand1": None,
        "astOperand2": None,
        "variable": None,
        "function": None,
        "scope": None,
        "valueType": None,
        "file": "test.c",
        "linenr": 1,
        "column": 1,
        "isName": False,
        "isNumber": False,
        "isCast": False,
        "originalName": "",
    }

    def __init__(self, **kwargs):
        for key, value in self._DEFAULTS.items():
            setattr(self, key, value)
        for key, value in kwargs.items():
            setattr(self, key, value)
        self.Id = str(next(_ids))

    def __repr__(self):
        return f"<MockToken {self.str!r}>"


class MockValueType:
    def __init__(self, type="record", typeScope=None, originalTypeName="", pointer=0):
        self.type = type
        self.typeScope = typeScope
        self.originalTypeName = originalTypeName
        self.pointer = pointer


class MockScope:
    def __init__(self, type="Global", className="", function=None,
                 nestedIn=None, bodyStart=None, bodyEnd=None):
        self.type = type
        self.className = className
        self.function = function
        self.nestedIn = nestedIn
        self.bodyStart = bodyStart
        self.bodyEnd = bodyEnd
        self.Id = str(next(_ids))


GLOBAL_SCOPE = MockScope(type="Global")


class MockVariable:
    """A Variable: deliberately has no ``argument``/``tokenDef``."""

    def __init__(self, name, isGlobal=False, isStatic=False, isLocal=False,
                 isArgument=False, scope=None, isPointer=True):
        self.nameToken = MockToken(str=name, isName=True) if name else None
        self.isGlobal = isGlobal
        self.isStatic = isStatic
        self.isLocal = isLocal
        self.isArgument = isArgument
        self.isPointer = isPointer
        self.scope = scope
        self.Id = str(next(_ids))
        if self.nameToken is not None:
            self.nameToken.variable = self

    def __repr__(self):
        return f"<MockVariable {self.nameToken.str if self.nameToken else None!r}>"


class MockFunction:
    def __init__(self, name, argument=None, isStatic=False, nestedIn=GLOBAL_SCOPE):
        self.name = name
        self.tokenDef = MockToken(str=name, isName=True)
        self.argument = argument if argument is not None else {}
        self.isStatic = isStatic
        self.nestedIn = nestedIn
        self.Id = str(next(_ids))
        self.tokenDef.function = self

    def __repr__(self):
        return f"<MockFunction {self.name!r}>"


class MockConfiguration:
    def __init__(self, tokenlist=None, scopes=None, functions=None,
                 variables=None, name=""):
        self.tokenlist = tokenlist or []
        self.scopes = scopes or []
        self.functions = functions or []
        self.variables = variables or []
        self.name = name


class MockData:
    def __init__(self, configurations=None, files=None):
        self.configurations = configurations or []
        self.files = files or []


# ── Chains and configurations ────────────────────────────────────

def make_token_chain(specs):
    """Create MockTokens from attribute dicts and link next/previous."""
    tokens = [MockToken(**attrs) for attrs in specs]
    return link_tokens(tokens)


def link_tokens(tokens):
    for prev, cur in zip(tokens, tokens[1:]):
        prev.next = cur
        cur.previous = prev
    return tokens


def make_cfg(tokens=None, scopes=None, functions=None, variables=None):
    return MockConfiguration(tokenlist=tokens, scopes=scopes,
                             functions=functions, variables=variables)


def make_data(configurations, files=None):
    return MockData(configurations=configurations, files=files)


# ── AST builders ─────────────────────────────────────────────────

def _adopt(parent, op1=None, op2=None):
    parent.astOperand1 = op1
    parent.astOperand2 = op2
    for child in (op1, op2):
        if child is not None:
            child.astParent = parent
    return parent


def name(text, variable=None, function=None, value_type=None):
    """Identifier leaf."""
    return MockToken(str=text, isName=True, variable=variable,
                     function=function, valueType=value_type)


def var_ref(var, value_type=None):
    """Identifier leaf bound to a MockVariable."""
    return name(var.nameToken.str, variable=var, value_type=value_type)


def func_ref(func):
    """Identifier leaf bound to a MockFunction."""
    return name(func.name, function=func)


def num(text):
    return MockToken(str=str(text), isNumber=True)


def binop(op, lhs, rhs):
    return _adopt(MockToken(str=op), lhs, rhs)


def assign(lhs, rhs):
    return binop("=", lhs, rhs)


def unop(op, operand, keyword=False):
    return _adopt(MockToken(str=op, isName=keyword), operand)


def addr(operand):
    return unop("&", operand)


def deref(operand):
    return unop("*", operand)


def call(callee, *args):
    """``callee(args...)``; *callee* may be a string or a token."""
    if isinstance(callee, str):
        callee = name(callee)
    arg_tree = None
    for arg in args:
        arg_tree = arg if arg_tree is None else binop(",", arg_tree, arg)
    return _adopt(MockToken(str="("), callee, arg_tree)


def cast(type_name, operand):
    """``(type_name)operand``; the type is carried by the ValueType."""
    tok = MockToken(str="(", isCast=True,
                    valueType=MockValueType(type="", originalTypeName=type_name))
    return _adopt(tok, operand)


def member(base, field, arrow=True):
    tok = MockToken(str=".", originalName="->" if arrow else "")
    return _adopt(tok, base, name(field))


def designated(field):
    """``.field`` inside a brace initializer."""
    return _adopt(MockToken(str="."), name(field))


def struct_type(class_name, pointer=1):
    return MockValueType(type="record", typeScope=MockScope(type="Struct", className=class_name),
                         originalTypeName=f"struct {class_name}", pointer=pointer)


def _linearize(tok, out):
    """In-order layout of an AST (operand 1, node, operand 2)."""
    if tok is None:
        return
    _linearize(tok.astOperand1, out)
    out.append(tok)
    _linearize(tok.astOperand2, out)


def lay_out(statements, file="test.c", first_line=1):
    """Token list for *statements*, each terminated by ``;``."""
    tokens = []
    for line, stmt in enumerate(statements, start=first_line):
        part = []
        _linearize(stmt, part)
        part.append(MockToken(str=";"))
        for tok in part:
            tok.file = file
            tok.linenr = line
        tokens.extend(part)
    return tokens


def make_function(fname, params=(), is_static=False):
    """MockFunction with one argument Variable per name in *params*."""
    func = MockFunction(fname, isStatic=is_static)
    for index, pname in enumerate(params, start=1):
        func.argument[index] = MockVariable(pname, isArgument=True)
    return func


def make_body(func, statements, file="test.c"):
    """
    Function scope of *func* holding *statements*.

    Returns ``(scope, tokens)``; tokens run from ``{`` to ``}``.
    """
    scope = MockScope(type="Function", className=func.name, function=func,
                      nestedIn=GLOBAL_SCOPE)
    open_brace = MockToken(str="{", file=file)
    close_brace = MockToken(str="}", file=file)
    tokens = [open_brace] + lay_out(statements, file=file) + [close_brace]
    link_tokens(tokens)
    open_brace.link = close_brace
    close_brace.link = open_brace
    for tok in tokens:
        tok.scope = scope
    scope.bodyStart = open_brace
    scope.bodyEnd = close_brace
    return scope, tokens


def make_unit(file, bodies=(), functions=(), variables=(), toplevel=()):
    """
    Dump with one configuration for translation unit *file*.

    *bodies* are ``(scope, tokens)`` pairs from :func:`make_body`;
    *toplevel* are file-scope statements (initializers).
    """
    tokens = lay_out(toplevel, file=file)
    scopes = []
    for scope, body_tokens in bodies:
        scopes.append(scope)
        tokens.extend(body_tokens)
    link_tokens(tokens)
    cfg = make_cfg(tokens=tokens, scopes=scopes, functions=list(functions),
                   variables=list(variables))
    return make_data([cfg], files=[file])


# ── Fixtures ─────────────────────────────────────────────────────

@pytest.fixture
def global_var():
    return MockVariable("global_x", isGlobal=True, scope=GLOBAL_SCOPE)


@pytest.fixture
def static_var():
    return MockVariable("counter", isGlobal=True, isStatic=True, scope=GLOBAL_SCOPE)


@pytest.fixture
def local_var():
    return MockVariable("d", isLocal=True)
