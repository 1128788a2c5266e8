import pytest
from quill.quill_datatypes import (
    Scope, Library,
    String, Variable, Boolean, Integer, Double,
    BinaryOperator, BinaryOperation, Tuple, FunctionCall, MethodCall,
    Parameter, Block, Function,
    VariableDeclaration, Assignment,
    QuillError, UndefinedVariable, FunctionNotFound, LibraryNotFound,
    ArityMismatch, TypeMismatch, TupleArityMismatch, DivisionByZero, IntegerOverflow,
)


class Echo(Library):
    def call_method(self, method_name, args):
        return Tuple([String(method_name)] + list(args))

# --- Atoms ---

def test_atom_equality_respects_kind():
    assert Integer(1) == Integer(1)
    assert Integer(1) != Double(1.0)
    assert Boolean(True) != Integer(1)
    assert String("x") != Variable("x")
    assert len({Integer(1), Double(1.0), Boolean(True)}) == 3


def test_atom_repr():
    assert repr(Integer(3)) == "Integer(3)"
    assert repr(String("a")) == "String('a')"
    assert Variable("v").name == "v"


def test_expression_equality_is_structural():
    a = BinaryOperation(BinaryOperator.PLUS, Integer(1), Variable("x"))
    b = BinaryOperation(BinaryOperator("+"), Integer(1), Variable("x"))
    assert a == b
    assert hash(a) == hash(b)
    assert Tuple([Integer(1)]) == Tuple([Integer(1)])
    assert FunctionCall("f", [Integer(1)]) != FunctionCall("g", [Integer(1)])
    assert MethodCall("m", "f", []) != MethodCall("m", "g", [])


def test_assignment_is_not_equal_to_declaration():
    assert VariableDeclaration("x", Integer(1)) != Assignment("x", Integer(1))
    assert isinstance(Assignment("x", Integer(1)), VariableDeclaration)


def test_binary_operator_comparisons():
    assert BinaryOperator.EQUAL.is_comparison
    assert BinaryOperator.NOT_EQUAL.is_comparison
    assert not BinaryOperator.DIVIDE.is_comparison


def test_function_arity_and_repr():
    f = Function("add", [Parameter("a"), Parameter("b", Integer(0))], Block([], Variable("a")))
    assert f.arity == 2
    assert repr(f) == "<Function add(a, b)>"

# --- Scope ---

def test_scope_variables():
    s = Scope()
    assert s.get_variable("x") is None
    s.set_variable("x", Integer(1))
    s.set_variable("x", Integer(2))
    assert s.get_variable("x") == Integer(2)
    assert "x" in s
    assert "y" not in s


def test_scope_required_lookups_raise_named_errors():
    s = Scope()
    with pytest.raises(UndefinedVariable, match="undefined variable 'x'"):
        s.require_variable("x")
    s.set_variable("x", Integer(1))
    assert "x" in s
    assert s.require_variable("x") == Integer(1)
    assert 1 not in s
    with pytest.raises(FunctionNotFound, match="function 'f' not found"):
        s.require_function("f")
    with pytest.raises(LibraryNotFound, match="library 'lib' not found"):
        s.call_library_method("lib", "m", [])


def test_scope_functions():
    s = Scope()
    f = Function("f", [], Block([], Integer(1)))
    s.set_function("f", f)
    assert s.get_function("f") is f
    assert s.require_function("f") is f


def test_scope_libraries():
    s = Scope()
    s.register_library("echo", Echo())
    assert s.call_library_method("echo", "hi", [Integer(1)]) == Tuple([String("hi"), Integer(1)])


def test_register_library_rejects_non_libraries():
    with pytest.raises(TypeError):
        Scope().register_library("bad", object())


def test_child_is_a_snapshot():
    s = Scope()
    s.set_variable("x", Integer(1))
    s.set_function("f", Function("f", [], Block([], Integer(1))))
    s.register_library("echo", Echo())

    c = s.child()
    assert c.get_variable("x") == Integer(1)
    assert c.get_function("f") is s.get_function("f")
    assert c.get_library("echo") is s.get_library("echo")

    c.set_variable("x", Integer(2))
    c.set_variable("y", Integer(3))
    c.set_function("g", Function("g", [], Block([], Integer(0))))
    assert s.get_variable("x") == Integer(1)
    assert s.get_variable("y") is None
    assert s.get_function("g") is None

    # Later writes to the parent are not seen by an existing child either
    s.set_variable("z", Integer(4))
    assert c.get_variable("z") is None

# --- Errors ---

def test_error_hierarchy():
    assert issubclass(UndefinedVariable, QuillError)
    assert issubclass(ArityMismatch, TypeError)
    assert issubclass(TypeMismatch, TypeError)
    assert issubclass(TupleArityMismatch, ValueError)
    assert issubclass(DivisionByZero, ZeroDivisionError)
    assert issubclass(IntegerOverflow, OverflowError)
    err = ArityMismatch("add", 2, 1)
    assert str(err) == "function 'add' expects 2 argument(s), got 1"
