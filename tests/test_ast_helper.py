# tests/test_ast_helper.py
"""
Tests for expression classification and rendering over Cppcheck ASTs.
"""

import pytest

from cppcheckdata_mtag.ast_helper import (
    call_target,
    expr_to_str,
    expr_to_string,
    expr_to_var_sym,
    function_pointer_name,
    get_call_arguments,
    get_called_function_name,
    is_address_of,
    is_dereference,
    is_function_call,
    iter_ast_postorder,
    iter_statement_roots,
    strip_expr,
    struct_name_of,
    symbol_key,
)
from tests.conftest import (
    MockFunction,
    MockToken,
    MockValueType,
    MockVariable,
    addr,
    assign,
    binop,
    call,
    cast,
    deref,
    designated,
    func_ref,
    make_body,
    make_function,
    member,
    name,
    num,
    struct_type,
    unop,
    var_ref,
)


class TestClassification:

    def test_call(self):
        assert is_function_call(call("kmalloc", name("size")))

    def test_cast_is_not_call(self):
        assert not is_function_call(cast("char *", name("p")))

    @pytest.mark.parametrize("keyword", ["if", "sizeof", "while", "return"])
    def test_keyword_is_not_call(self, keyword):
        assert not is_function_call(call(keyword, name("x")))

    def test_address_of_vs_bitand(self):
        assert is_address_of(addr(name("x")))
        assert not is_address_of(binop("&", name("a"), name("b")))

    def test_dereference_vs_multiply(self):
        assert is_dereference(deref(name("p")))
        assert not is_dereference(binop("*", name("a"), name("b")))

    def test_called_name_direct(self):
        assert get_called_function_name(call("alloc_dev")) == "alloc_dev"

    def test_called_name_through_member(self):
        tok = call(member(name("ops"), "probe"), name("dev"))
        assert get_called_function_name(tok) == ""

    def test_call_arguments_order(self):
        a, b, c = name("a"), name("b"), name("c")
        assert get_call_arguments(call("f", a, b, c)) == [a, b, c]

    def test_call_arguments_empty(self):
        assert get_call_arguments(call("f")) == []


class TestCallTarget:

    def test_direct_extern(self):
        func = MockFunction("helper")
        assert call_target(call(func_ref(func))) == ("helper", False)

    def test_direct_static(self):
        func = MockFunction("helper", isStatic=True)
        assert call_target(call(func_ref(func))) == ("helper", True)

    def test_undeclared_callee(self):
        assert call_target(call("printk", name("fmt"))) == ("printk", False)

    def test_member_pointer(self):
        drv = MockVariable("drv", isLocal=True)
        base = var_ref(drv, value_type=struct_type("pci_driver"))
        tok = call(member(base, "probe"), name("dev"))
        assert call_target(tok) == ("(struct pci_driver)->probe", False)

    def test_dereferenced_member_pointer(self):
        base = name("drv", value_type=struct_type("pci_driver"))
        tok = call(deref(member(base, "remove")))
        assert call_target(tok) == ("(struct pci_driver)->remove", False)

    def test_plain_pointer_variable(self):
        fp = MockVariable("fp", isLocal=True)
        assert call_target(call(var_ref(fp))) is None

    def test_not_a_call(self):
        assert call_target(name("x")) is None


class TestStructName:

    def test_from_type_scope(self):
        assert struct_name_of(name("d", value_type=struct_type("dev"))) == "dev"

    def test_from_original_type_name(self):
        vt = MockValueType(type="record", originalTypeName="const struct file_operations *")
        assert struct_name_of(name("f", value_type=vt)) == "file_operations"

    def test_scalar(self):
        assert struct_name_of(name("n", value_type=MockValueType(type="int"))) is None

    def test_function_pointer_name_needs_type(self):
        assert function_pointer_name(member(name("ops"), "open")) is None


class TestTraversal:

    def test_postorder_children_first(self):
        d = name("d")
        inner = call("alloc_dev")
        root = assign(d, inner)
        order = list(iter_ast_postorder(root))
        assert order.index(inner) < order.index(root)
        assert order[-1] is root
        assert order[0] is d

    def test_postorder_none(self):
        assert list(iter_ast_postorder(None)) == []

    def test_statement_roots(self):
        func = make_function("probe")
        first = assign(name("d"), call("alloc_dev"))
        second = call("register_dev", name("d"))
        scope, _ = make_body(func, [first, second])
        assert list(iter_statement_roots(scope)) == [first, second]

    def test_symbol_key_prefers_id(self):
        var = MockVariable("x")
        assert symbol_key(var) == var.Id
        assert symbol_key(object()) is not None


class TestRendering:

    def test_leaf(self):
        assert expr_to_string(name("x")) == "x"

    def test_call_no_args(self):
        assert expr_to_string(call("alloc_dev")) == "alloc_dev()"

    def test_call_args(self):
        tok = call("kmalloc", binop("*", num(4), name("n")), name("GFP_KERNEL"))
        assert expr_to_string(tok) == "kmalloc(4 * n, GFP_KERNEL)"

    def test_arrow_and_dot(self):
        assert expr_to_string(member(name("d"), "dev")) == "d->dev"
        assert expr_to_string(member(name("s"), "lock", arrow=False)) == "s.lock"

    def test_subscript(self):
        tok = binop("[", name("regs"), num(2))
        assert expr_to_string(tok) == "regs[2]"

    def test_nested_binary_parenthesised(self):
        grouped = binop("*", binop("+", name("a"), name("b")), name("c"))
        flat = binop("+", name("a"), binop("*", name("b"), name("c")))
        assert expr_to_string(grouped) == "(a + b) * c"
        assert expr_to_string(flat) == "a + (b * c)"

    def test_ternary(self):
        tok = binop("?", name("c"), binop(":", name("x"), name("y")))
        assert expr_to_string(tok) == "c ? x : y"

    def test_prefix_unary(self):
        assert expr_to_string(addr(name("x"))) == "&x"
        assert expr_to_string(unop("!", name("ok"))) == "!ok"

    def test_postfix_increment(self):
        i = MockToken(str="i", isName=True)
        inc = MockToken(str="++", astOperand1=i, previous=i)
        i.astParent = inc
        assert expr_to_string(inc) == "i++"

    def test_keyword_unary(self):
        assert expr_to_string(unop("return", name("d"), keyword=True)) == "return d"

    def test_designated_initializer(self):
        assert expr_to_string(designated("probe")) == ".probe"

    def test_cast_rendering(self):
        assert expr_to_string(cast("void *", name("p"))) == "(void *)p"

    def test_cast_stripped(self):
        tok = cast("struct dev *", call("kmalloc", name("sz")))
        assert strip_expr(tok) is tok.astOperand1
        assert expr_to_str(tok) == "kmalloc(sz)"

    def test_depth_limit(self):
        tok = name("x")
        for _ in range(10):
            tok = unop("-", tok)
        assert "..." in expr_to_string(tok, max_depth=3)

    def test_none(self):
        assert expr_to_string(None) == ""


class TestVarSym:

    def test_identifier(self):
        d = MockVariable("d", isLocal=True)
        assert expr_to_var_sym(var_ref(d)) == ("d", d)

    def test_member_chain(self):
        d = MockVariable("d", isLocal=True)
        tok = member(member(var_ref(d), "dev"), "parent")
        assert expr_to_var_sym(tok) == ("d->dev->parent", d)

    def test_subscript(self):
        d = MockVariable("d", isLocal=True)
        tok = binop("[", member(var_ref(d), "regs"), num(2))
        assert expr_to_var_sym(tok) == ("d->regs[2]", d)

    def test_dereference(self):
        pp = MockVariable("pp", isLocal=True)
        assert expr_to_var_sym(deref(var_ref(pp))) == ("*pp", pp)

    def test_through_cast(self):
        d = MockVariable("d", isLocal=True)
        assert expr_to_var_sym(cast("void *", var_ref(d))) == ("d", d)

    def test_call_has_no_symbol(self):
        assert expr_to_var_sym(call("get_dev")) == ("get_dev()", None)

    def test_unbound_identifier(self):
        assert expr_to_var_sym(name("FOO")) == ("FOO", None)

    def test_none(self):
        assert expr_to_var_sym(None) == ("", None)
