from quill.quill_datatypes import (
    Scope, Library,
    Expression, Atom, String, Variable, Boolean, Integer, Double,
    BinaryOperator, BinaryOperation, Tuple, FunctionCall, MethodCall,
    Parameter, Block, Function,
    Statement, VariableDeclaration, Assignment, TupleAssignment, FunctionDefinition, FunctionCallStatement,
    QuillError, QuillParseError, QuillSystemError,
    UndefinedVariable, FunctionNotFound, LibraryNotFound, MethodNotFound,
    ArityMismatch, TypeMismatch, TupleArityMismatch, UnsupportedExpression,
    DivisionByZero, IntegerOverflow,
)
from quill.quill_parser import QuillParser, parse_program, parse_statement, parse_expression
from quill.quill_interpreter import Evaluator
from quill.quill_runtime import (
    ScriptRunner, ExecutionResult, HostLibrary, MathLibrary, library_method, BUILTIN_LIBRARIES,
)
from quill.quill_printer import Printer
from quill.quill_file import read_script, run_file, strip_shebang
