"""
The core Quill interpreter: a strict, synchronous tree-walking Evaluator.
"""
import os
import sys
from typing import Any, Callable, Dict, List, Optional

from quill.quill_datatypes import (
    Scope, Library, Expression, Statement,
    Atom, Variable, Boolean, Integer, Double, String,
    BinaryOperator, BinaryOperation, Tuple, FunctionCall, MethodCall, Function,
    VariableDeclaration, TupleAssignment, FunctionDefinition, FunctionCallStatement,
    ArityMismatch, TypeMismatch, TupleArityMismatch, UnsupportedExpression,
    DivisionByZero, IntegerOverflow, LibraryNotFound,
)


def kind_of(value: Any) -> str:
    """Script-facing name of a value's kind, used in error messages."""
    return type(value).__name__


def _checked(value: int) -> Integer:
    if not Integer.MIN <= value <= Integer.MAX:
        raise IntegerOverflow(f"integer overflow: {value} does not fit in 64 bits")
    return Integer(value)


class Evaluator:
    """The Quill execution engine.

    `library_catalog` maps library names to zero-argument factories (usually
    `Library` subclasses); `import name` instantiates from it.
    """

    def __init__(self, library_catalog: Optional[Dict[str, Callable[[], Library]]] = None):
        self.library_catalog: Dict[str, Callable[[], Library]] = dict(library_catalog or {})
        self.side_effects: List[Dict] = []
        self.call_stack: List[Dict] = []

    def _push_frame(self, name, args):
        self.call_stack.append({'name': name, 'args': list(args)})

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def _dbg(self, *parts):
        if os.environ.get("QUILL_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    # -----------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------

    def eval(self, node: Expression, scope: Scope) -> Expression:
        """Evaluates `node` in `scope` and returns a new value."""
        match node:
            case Variable():
                return self._resolve_variable(node.name, scope)
            case Atom():
                return node
            case BinaryOperation():
                return self._eval_binary(node, scope)
            case Function():
                # A function expression registers itself under its own name.
                scope.set_function(node.name, node)
                return node
            case Tuple():
                return Tuple([self.eval(item, scope) for item in node.items])
            case FunctionCall():
                return self._eval_function_call(node, scope)
            case MethodCall():
                return self._eval_method_call(node, scope)
            case _:
                raise UnsupportedExpression(f"unsupported expression: {node!r}")

    def _resolve_variable(self, name: str, scope: Scope) -> Expression:
        value = scope.require_variable(name)
        seen = {name}
        while isinstance(value, Variable):
            if value.name in seen:
                raise UnsupportedExpression(f"circular reference through variable '{name}'")
            seen.add(value.name)
            value = scope.require_variable(value.name)
        return self.eval(value, scope)

    def _eval_binary(self, node: BinaryOperation, scope: Scope) -> Expression:
        left = self.eval(node.left, scope)
        right = self.eval(node.right, scope)
        op = node.op

        if op is BinaryOperator.EQUAL:
            return Boolean(left == right)
        if op is BinaryOperator.NOT_EQUAL:
            return Boolean(left != right)

        if type(left) is Integer and type(right) is Integer:
            return self._integer_arithmetic(op, left.value, right.value)
        if type(left) is Double and type(right) is Double:
            return self._double_arithmetic(op, left.value, right.value)
        raise TypeMismatch(f"cannot apply '{op.value}' to {kind_of(left)} and {kind_of(right)}")

    def _integer_arithmetic(self, op: BinaryOperator, a: int, b: int) -> Integer:
        match op:
            case BinaryOperator.PLUS:
                return _checked(a + b)
            case BinaryOperator.MINUS:
                return _checked(a - b)
            case BinaryOperator.TIMES:
                return _checked(a * b)
            case BinaryOperator.DIVIDE:
                if b == 0:
                    raise DivisionByZero("integer division by zero")
                # Truncate toward zero.
                q = abs(a) // abs(b)
                return _checked(q if (a < 0) == (b < 0) else -q)
        raise UnsupportedExpression(f"unsupported operator '{op.value}'")

    def _double_arithmetic(self, op: BinaryOperator, a: float, b: float) -> Double:
        match op:
            case BinaryOperator.PLUS:
                return Double(a + b)
            case BinaryOperator.MINUS:
                return Double(a - b)
            case BinaryOperator.TIMES:
                return Double(a * b)
            case BinaryOperator.DIVIDE:
                if b == 0.0:
                    raise DivisionByZero("float division by zero")
                return Double(a / b)
        raise UnsupportedExpression(f"unsupported operator '{op.value}'")

    def _eval_function_call(self, node: FunctionCall, scope: Scope) -> Expression:
        function = scope.require_function(node.name)
        args = [self.eval(arg, scope) for arg in node.args]
        self._dbg("CALL", node.name, "argc", len(args))
        self._push_frame(node.name, args)
        _ok = False
        try:
            result = self.call(function, args, scope)
            _ok = True
        finally:
            if _ok:
                self._pop_frame()
        return result

    def _eval_method_call(self, node: MethodCall, scope: Scope) -> Expression:
        if node.is_import and scope.get_library(node.receiver) is None:
            return self._import(node.method, scope)

        args = [self.eval(arg, scope) for arg in node.args]
        name = f"{node.receiver}.{node.method}"
        self._dbg("METHOD", name, "argc", len(args))
        self._push_frame(name, args)
        _ok = False
        try:
            result = scope.call_library_method(node.receiver, node.method, args)
            _ok = True
        finally:
            if _ok:
                self._pop_frame()
        if not isinstance(result, Expression):
            raise TypeMismatch(f"library method {name} returned {type(result).__name__}, not an expression")
        return result

    def _import(self, name: str, scope: Scope) -> Expression:
        if scope.get_library(name) is not None:
            self._dbg("IMPORT", name, "already registered")
            return String(name)
        factory = self.library_catalog.get(name)
        if factory is None:
            raise LibraryNotFound(name)
        self._dbg("IMPORT", name)
        scope.register_library(name, factory())
        return String(name)

    def call(self, function: Function, args: List[Expression], scope: Scope) -> Expression:
        """Calls `function` with already-evaluated `args`.

        The body runs in a snapshot copy of `scope`; nothing it binds is
        written back to the caller.
        """
        if len(args) != function.arity:
            raise ArityMismatch(function.name, function.arity, len(args))
        local = scope.child()
        for param, arg in zip(function.parameters, args):
            local.set_variable(param.name, arg)
        for stmt in function.body.statements:
            self.execute(stmt, local)
        return self.eval(function.body.return_expr, local)

    # -----------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------

    def execute(self, stmt: Statement, scope: Scope) -> Expression:
        """Executes one statement against `scope` and returns the value it produced."""
        match stmt:
            case VariableDeclaration():
                # Assignment is a VariableDeclaration subclass and rebinds the same way.
                value = self.eval(stmt.expr, scope)
                scope.set_variable(stmt.name, value)
                return value
            case TupleAssignment():
                value = self.eval(stmt.expr, scope)
                if not isinstance(value, Tuple):
                    raise TypeMismatch(f"cannot destructure {kind_of(value)} into {len(stmt.names)} name(s)")
                if len(value) != len(stmt.names):
                    raise TupleArityMismatch(len(stmt.names), len(value))
                for name, item in zip(stmt.names, value.items):
                    scope.set_variable(name, item)
                return value
            case FunctionDefinition():
                scope.set_function(stmt.function.name, stmt.function)
                return stmt.function
            case FunctionCallStatement():
                result = self.eval(stmt.as_expression(), scope)
                self._rebind_call_arguments(stmt, result, scope)
                return result
            case _:
                raise UnsupportedExpression(f"unsupported statement: {stmt!r}")

    def _rebind_call_arguments(self, stmt: FunctionCallStatement, result: Expression, scope: Scope):
        # f(x, y) on its own line: a tuple result rebinds the bare-variable arguments in order.
        if not isinstance(result, Tuple):
            return
        targets = [arg.name for arg in stmt.args if isinstance(arg, Variable)]
        if targets and len(targets) == len(result):
            self._dbg("REBIND", stmt.name, targets)
            for name, item in zip(targets, result.items):
                scope.set_variable(name, item)

    def execute_program(self, statements: List[Statement], scope: Scope) -> Optional[Expression]:
        """Hoists function definitions, then executes every statement in order.

        Returns the value of the last statement.
        """
        for stmt in statements:
            if isinstance(stmt, FunctionDefinition):
                self._dbg("HOIST", stmt.function.name)
                scope.set_function(stmt.function.name, stmt.function)
        value = None
        for stmt in statements:
            value = self.execute(stmt, scope)
        return value

    def run(self, statements: List[Statement], scope: Scope) -> Dict[str, Expression]:
        """Runs a program and returns a copy of the final variable table."""
        self.execute_program(statements, scope)
        return dict(scope.variables)
