"""
Defines the core data types for the Quill language runtime.

This module provides the AST vocabulary the parser produces and the
evaluator consumes (atoms, expressions, statements, functions), the
error classes raised while parsing and evaluating, the `Library`
capability interface, and the `Scope` environment.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Dict, Any, Optional


# =================================================================
# Errors
# =================================================================

class QuillParseError(Exception):
    """Raised when source text does not match the grammar."""
    pass


class QuillSystemError(Exception):
    """Raised by host-side collaborators (file loading), never by evaluation."""
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class QuillError(Exception):
    """Base class for every evaluation error."""
    pass


class UndefinedVariable(QuillError, NameError):
    def __init__(self, name: str):
        super().__init__(f"undefined variable '{name}'")
        self.name = name


class FunctionNotFound(QuillError, NameError):
    def __init__(self, name: str):
        super().__init__(f"function '{name}' not found")
        self.name = name


class LibraryNotFound(QuillError, LookupError):
    def __init__(self, name: str):
        super().__init__(f"library '{name}' not found")
        self.name = name


class MethodNotFound(QuillError, LookupError):
    def __init__(self, library: str, method: str):
        super().__init__(f"method '{method}' not found in library '{library}'")
        self.library = library
        self.method = method


class ArityMismatch(QuillError, TypeError):
    def __init__(self, name: str, expected: int, got: int):
        super().__init__(f"function '{name}' expects {expected} argument(s), got {got}")
        self.name = name
        self.expected = expected
        self.got = got


class TypeMismatch(QuillError, TypeError):
    pass


class TupleArityMismatch(QuillError, ValueError):
    def __init__(self, expected: int, got: int):
        super().__init__(f"cannot destructure {got} value(s) into {expected} name(s)")
        self.expected = expected
        self.got = got


class UnsupportedExpression(QuillError):
    pass


class DivisionByZero(QuillError, ZeroDivisionError):
    pass


class IntegerOverflow(QuillError, OverflowError):
    pass


# =================================================================
# Abstract Base Classes
# =================================================================

class Expression(ABC):
    """Abstract base class for every node that evaluates to a value."""
    pass


class Statement(ABC):
    """Abstract base class for every executable program line."""
    pass


class Library(ABC):
    """A named bundle of methods reachable through `name.method(args)`."""

    @abstractmethod
    def call_method(self, method_name: str, args: List[Expression]) -> Expression:
        raise NotImplementedError


# =================================================================
# Atoms
# =================================================================

class Atom(Expression):
    """A fully reduced leaf value. Subclasses carry a single payload."""
    __slots__ = ('value',)

    def __init__(self, value):
        self.value = value

    def __repr__(self):
        return f"{type(self).__name__}({self.value!r})"

    def __eq__(self, other):
        # Kind matters: Integer(1) is not Double(1.0) and Boolean(True) is not Integer(1).
        return type(self) is type(other) and self.value == other.value

    def __hash__(self):
        return hash((type(self).__name__, self.value))


class String(Atom):
    pass


class Variable(Atom):
    """An unresolved reference to a variable by name."""

    @property
    def name(self) -> str:
        return self.value


class Boolean(Atom):
    pass


class Integer(Atom):
    MIN = -(2 ** 63)
    MAX = 2 ** 63 - 1


class Double(Atom):
    pass


# =================================================================
# Expressions
# =================================================================

class BinaryOperator(Enum):
    PLUS = '+'
    MINUS = '-'
    TIMES = '*'
    DIVIDE = '/'
    EQUAL = '=='
    NOT_EQUAL = '!='

    @property
    def is_comparison(self) -> bool:
        return self in (BinaryOperator.EQUAL, BinaryOperator.NOT_EQUAL)


class BinaryOperation(Expression):
    def __init__(self, op: BinaryOperator, left: Expression, right: Expression):
        self.op = op
        self.left = left
        self.right = right

    def __repr__(self):
        return f"BinaryOperation({self.op.name}, {self.left!r}, {self.right!r})"

    def __eq__(self, other):
        return (isinstance(other, BinaryOperation) and self.op == other.op
                and self.left == other.left and self.right == other.right)

    def __hash__(self):
        return hash(('BinaryOperation', self.op, self.left, self.right))


class Tuple(Expression):
    def __init__(self, items: List[Expression]):
        self.items = list(items)

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __repr__(self):
        return f"Tuple({self.items!r})"

    def __eq__(self, other):
        return isinstance(other, Tuple) and self.items == other.items

    def __hash__(self):
        return hash(('Tuple', tuple(self.items)))


class FunctionCall(Expression):
    def __init__(self, name: str, args: List[Expression]):
        self.name = name
        self.args = list(args)

    def __repr__(self):
        return f"FunctionCall({self.name!r}, {self.args!r})"

    def __eq__(self, other):
        return isinstance(other, FunctionCall) and self.name == other.name and self.args == other.args

    def __hash__(self):
        return hash(('FunctionCall', self.name, tuple(self.args)))


class MethodCall(Expression):
    """`receiver.method(args)`; the receiver names a library, not a variable."""
    def __init__(self, receiver: str, method: str, args: List[Expression]):
        self.receiver = receiver
        self.method = method
        self.args = list(args)

    @property
    def is_import(self) -> bool:
        return self.receiver == "import" and not self.args

    def __repr__(self):
        return f"MethodCall({self.receiver!r}, {self.method!r}, {self.args!r})"

    def __eq__(self, other):
        return (isinstance(other, MethodCall) and self.receiver == other.receiver
                and self.method == other.method and self.args == other.args)

    def __hash__(self):
        return hash(('MethodCall', self.receiver, self.method, tuple(self.args)))


# =================================================================
# Functions
# =================================================================

class Parameter:
    def __init__(self, name: str, default: Optional[Expression] = None):
        self.name = name
        self.default = default

    def __repr__(self):
        if self.default is None:
            return f"Parameter({self.name!r})"
        return f"Parameter({self.name!r}, {self.default!r})"

    def __eq__(self, other):
        return isinstance(other, Parameter) and self.name == other.name and self.default == other.default

    def __hash__(self):
        return hash(('Parameter', self.name, self.default))


class Block:
    """Statements followed by the expression whose value the block returns."""
    def __init__(self, statements: List['Statement'], return_expr: Expression):
        self.statements = list(statements)
        self.return_expr = return_expr

    def __repr__(self):
        return f"Block({self.statements!r}, {self.return_expr!r})"

    def __eq__(self, other):
        return (isinstance(other, Block) and self.statements == other.statements
                and self.return_expr == other.return_expr)

    def __hash__(self):
        return hash(('Block', tuple(self.statements), self.return_expr))


class Function(Expression):
    """A named, user-defined function. Also a first-class expression value."""
    def __init__(self, name: str, parameters: List[Parameter], body: Block):
        self.name = name
        self.parameters = list(parameters)
        self.body = body

    @property
    def arity(self) -> int:
        return len(self.parameters)

    def __repr__(self):
        params = ", ".join(p.name for p in self.parameters)
        return f"<Function {self.name}({params})>"

    def __eq__(self, other):
        return (isinstance(other, Function) and self.name == other.name
                and self.parameters == other.parameters and self.body == other.body)

    def __hash__(self):
        return hash(('Function', self.name, tuple(self.parameters), self.body))


# =================================================================
# Statements
# =================================================================

class VariableDeclaration(Statement):
    def __init__(self, name: str, expr: Expression):
        self.name = name
        self.expr = expr

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r}, {self.expr!r})"

    def __eq__(self, other):
        return type(self) is type(other) and self.name == other.name and self.expr == other.expr

    def __hash__(self):
        return hash((type(self).__name__, self.name, self.expr))


class Assignment(VariableDeclaration):
    """Rebinding an existing name. Executes exactly like a declaration."""
    pass


class TupleAssignment(Statement):
    def __init__(self, names: List[str], expr: Expression):
        self.names = list(names)
        self.expr = expr

    def __repr__(self):
        return f"TupleAssignment({self.names!r}, {self.expr!r})"

    def __eq__(self, other):
        return isinstance(other, TupleAssignment) and self.names == other.names and self.expr == other.expr

    def __hash__(self):
        return hash(('TupleAssignment', tuple(self.names), self.expr))


class FunctionDefinition(Statement):
    def __init__(self, function: Function):
        self.function = function

    def __repr__(self):
        return f"FunctionDefinition({self.function!r})"

    def __eq__(self, other):
        return isinstance(other, FunctionDefinition) and self.function == other.function

    def __hash__(self):
        return hash(('FunctionDefinition', self.function))


class FunctionCallStatement(Statement):
    """A call on a line of its own, evaluated for its effect."""
    def __init__(self, name: str, args: List[Expression]):
        self.name = name
        self.args = list(args)

    def as_expression(self) -> FunctionCall:
        return FunctionCall(self.name, self.args)

    def __repr__(self):
        return f"FunctionCallStatement({self.name!r}, {self.args!r})"

    def __eq__(self, other):
        return isinstance(other, FunctionCallStatement) and self.name == other.name and self.args == other.args

    def __hash__(self):
        return hash(('FunctionCallStatement', self.name, tuple(self.args)))


# =================================================================
# Scope
# =================================================================

class Scope:
    """The environment one evaluation context runs against.

    Three independent tables are kept: variables (name -> Expression),
    functions (name -> Function) and libraries (name -> Library). Every
    insertion overwrites. There is no parent chain: a function call runs
    in `child()`, a snapshot copy of the caller's tables, so nothing the
    callee binds is visible to the caller once the call returns.
    """
    def __init__(self):
        self.variables: Dict[str, Expression] = {}
        self.functions: Dict[str, Function] = {}
        self.libraries: Dict[str, Library] = {}

    # --- variables ---
    def set_variable(self, name: str, value: Expression):
        self.variables[name] = value

    def get_variable(self, name: str) -> Optional[Expression]:
        return self.variables.get(name)

    def require_variable(self, name: str) -> Expression:
        if name not in self:
            raise UndefinedVariable(name)
        return self.variables[name]

    # --- functions ---
    def set_function(self, name: str, function: Function):
        self.functions[name] = function

    def get_function(self, name: str) -> Optional[Function]:
        return self.functions.get(name)

    def require_function(self, name: str) -> Function:
        function = self.functions.get(name)
        if function is None:
            raise FunctionNotFound(name)
        return function

    # --- libraries ---
    def register_library(self, name: str, library: Library):
        if not isinstance(library, Library):
            raise TypeError(f"library '{name}' must implement Library, not {type(library).__name__}")
        self.libraries[name] = library

    def get_library(self, name: str) -> Optional[Library]:
        return self.libraries.get(name)

    def call_library_method(self, library_name: str, method_name: str, args: List[Expression]) -> Expression:
        library = self.libraries.get(library_name)
        if library is None:
            raise LibraryNotFound(library_name)
        return library.call_method(method_name, args)

    def child(self) -> 'Scope':
        """Snapshot copy used as the local scope of a function call."""
        s = Scope()
        s.variables = dict(self.variables)
        s.functions = dict(self.functions)
        s.libraries = dict(self.libraries)
        return s

    def __contains__(self, name: Any) -> bool:
        return isinstance(name, str) and name in self.variables

    def __repr__(self):
        return (f"<Scope variables={sorted(self.variables)} functions={sorted(self.functions)} "
                f"libraries={sorted(self.libraries)}>")
