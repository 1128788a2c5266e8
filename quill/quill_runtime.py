"""
Host-facing runtime: library dispatch, the built-in libraries and ScriptRunner.
"""
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Literal, Optional

from quill.quill_datatypes import (
    Scope, Library, Expression, Function, Double,
    QuillError, QuillParseError, QuillSystemError, MethodNotFound, TypeMismatch,
)
from quill.quill_interpreter import Evaluator, kind_of
from quill.quill_parser import QuillParser


def library_method(func):
    """A decorator to explicitly mark methods as callable from Quill scripts."""
    func._is_quill_method = True
    return func


class HostLibrary(Library):
    """Base class for Python objects exposed to scripts as a library.

    Only methods decorated with @library_method are reachable; a script
    calling anything else gets MethodNotFound. Methods receive the evaluated
    argument expressions positionally and must return an Expression.
    """
    name: str = "host"
    _library_methods: FrozenSet[str] = frozenset()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        # Built once per class; instance attributes and properties are not touched.
        cls._library_methods = frozenset(
            attr for attr, member in inspect.getmembers(cls, inspect.isfunction)
            if getattr(member, "_is_quill_method", False)
        )

    def has_method(self, method_name: str) -> bool:
        return method_name in self._library_methods

    def call_method(self, method_name: str, args: List[Expression]) -> Expression:
        if method_name not in self._library_methods:
            raise MethodNotFound(self.name, method_name)
        method = getattr(self, method_name)
        try:
            inspect.signature(method).bind(*args)
        except TypeError:
            kinds = ", ".join(kind_of(a) for a in args) or "no arguments"
            raise TypeMismatch(f"invalid arguments for {self.name}.{method_name}: {kinds}") from None
        return method(*args)


class MathLibrary(HostLibrary):
    name = "math"

    @library_method
    def abs(self, value: Expression) -> Double:
        if type(value) is not Double:
            raise TypeMismatch(f"math.abs expects a Double, got {kind_of(value)}")
        return Double(abs(value.value))


BUILTIN_LIBRARIES: Dict[str, Callable[[], Library]] = {
    "math": MathLibrary,
}


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    variables: Dict[str, Expression] = field(default_factory=dict)
    error_message: Optional[str] = None
    error_kind: Optional[Literal['parse', 'evaluation', 'system', 'internal']] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        return str(self.error_message or "Unknown error")


class ScriptRunner:
    """Parses and executes Quill code against a persistent root scope."""

    def __init__(self, libraries: Optional[Dict[str, Library]] = None, load_builtins: bool = True):
        self.parser = QuillParser()
        self.evaluator = Evaluator(BUILTIN_LIBRARIES if load_builtins else None)
        self.root_scope = Scope()
        for name, library in (libraries or {}).items():
            self.register_library(name, library)

    def register_library(self, name: str, library: Library):
        self.root_scope.register_library(name, library)

    def register_function(self, function: Function):
        self.root_scope.set_function(function.name, function)

    def run(self, source_code: str, scope: Optional[Scope] = None) -> Dict[str, Expression]:
        """Parses and runs `source_code`, returning the final variable table.

        Errors propagate as QuillParseError / QuillError.
        """
        statements = self.parser.parse_program(source_code)
        self.evaluator.call_stack.clear()
        return self.evaluator.run(statements, self.root_scope if scope is None else scope)

    def _format_stacktrace(self) -> str:
        stack = self.evaluator.call_stack
        if not stack:
            return ""
        from quill.quill_printer import Printer
        pf = Printer().pformat
        frames = []
        for frame in stack:
            args_s = " ".join(pf(a) for a in frame.get('args') or [])
            frames.append(f"({frame['name']} {args_s})" if args_s else f"({frame['name']})")
        return "Quill stacktrace: " + " ".join(frames)

    def _error_result(self, msg: str, kind: str) -> ExecutionResult:
        self.evaluator.side_effects.append({'topics': ['stderr'], 'message': msg})
        return ExecutionResult(
            status='error',
            error_message=msg,
            error_kind=kind,
            variables=dict(self.root_scope.variables),
            side_effects=list(self.evaluator.side_effects),
        )

    async def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script. Script errors never raise."""
        self.evaluator.side_effects.clear()
        self.evaluator.call_stack.clear()

        # 1. Parse
        try:
            statements = self.parser.parse_program(source_code)
        except QuillParseError as e:
            return self._error_result(f"ParseError: {e}", 'parse')

        # 2. Evaluate
        try:
            value = self.evaluator.execute_program(statements, self.root_scope)
        except QuillError as e:
            msg = f"{type(e).__name__}: {e}"
            st = self._format_stacktrace()
            if st:
                msg += "\n" + st
            return self._error_result(msg, 'evaluation')
        except QuillSystemError as e:
            return self._error_result(f"SystemError: {e}", 'system')
        except RecursionError:
            return self._error_result("InternalError: maximum call depth exceeded", 'internal')

        return ExecutionResult(
            status='success',
            value=value,
            variables=dict(self.root_scope.variables),
            side_effects=list(self.evaluator.side_effects),
        )
