"""
A pretty-printer for Quill values and syntax trees.
"""
import collections.abc

from quill.quill_datatypes import (
    String, Variable, Boolean, Integer, Double,
    BinaryOperation, Tuple, FunctionCall, MethodCall,
    Parameter, Block, Function,
    VariableDeclaration, Assignment, TupleAssignment, FunctionDefinition, FunctionCallStatement,
)


class Printer:
    """Formats Quill objects into readable, valid Quill source strings."""

    def __init__(self, indent_width=4):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def _get_handler(self, obj):
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, collections.abc.Mapping):
            return self._pformat_table
        if isinstance(obj, list):
            return self._pformat_program
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            String: self._pformat_string,
            Variable: self._pformat_variable,
            Boolean: self._pformat_boolean,
            Integer: self._pformat_integer,
            Double: self._pformat_double,
            BinaryOperation: self._pformat_binary,
            Tuple: self._pformat_tuple,
            FunctionCall: self._pformat_call,
            MethodCall: self._pformat_method_call,
            Parameter: self._pformat_parameter,
            Function: self._pformat_function,
            VariableDeclaration: self._pformat_declaration,
            Assignment: self._pformat_declaration,
            TupleAssignment: self._pformat_tuple_assignment,
            FunctionDefinition: self._pformat_definition,
            FunctionCallStatement: self._pformat_call,
            type(None): lambda o, l: "",
        }

    def _indent(self, level):
        return self._indent_char * level

    # --- atoms ---
    def _pformat_string(self, obj, level):
        return f'"{obj.value}"'

    def _pformat_variable(self, obj, level):
        return obj.name

    def _pformat_boolean(self, obj, level):
        return "true" if obj.value else "false"

    def _pformat_integer(self, obj, level):
        return str(obj.value)

    def _pformat_double(self, obj, level):
        return repr(obj.value)

    # --- expressions ---
    def _pformat_binary(self, obj, level):
        return f"{self.pformat(obj.left, level)} {obj.op.value} {self.pformat(obj.right, level)}"

    def _pformat_tuple(self, obj, level):
        return "[" + ", ".join(self.pformat(i, level) for i in obj.items) + "]"

    def _args(self, args, level):
        return "(" + ", ".join(self.pformat(a, level) for a in args) + ")"

    def _pformat_call(self, obj, level):
        return f"{obj.name}{self._args(obj.args, level)}"

    def _pformat_method_call(self, obj, level):
        if obj.is_import:
            return f"import {obj.method}"
        return f"{obj.receiver}.{obj.method}{self._args(obj.args, level)}"

    def _pformat_parameter(self, obj, level):
        if obj.default is None:
            return obj.name
        return f"{obj.name}={self.pformat(obj.default, level)}"

    def _pformat_function(self, obj, level):
        params = ", ".join(self.pformat(p, level) for p in obj.parameters)
        head = f"{obj.name}({params}) =>"
        body: Block = obj.body
        if not body.statements:
            return f"{head} {self.pformat(body.return_expr, level)}"
        inner = self._indent(level + 1)
        lines = [head]
        for stmt in body.statements:
            lines.append(inner + self.pformat(stmt, level + 1))
        lines.append(inner + self.pformat(body.return_expr, level + 1))
        return "\n".join(lines)

    # --- statements ---
    def _pformat_declaration(self, obj, level):
        return f"{obj.name} = {self.pformat(obj.expr, level)}"

    def _pformat_tuple_assignment(self, obj, level):
        return f"[{', '.join(obj.names)}] = {self.pformat(obj.expr, level)}"

    def _pformat_definition(self, obj, level):
        return self._pformat_function(obj.function, level)

    def _pformat_program(self, obj, level):
        return "\n".join(self.pformat(stmt, level) for stmt in obj)

    def _pformat_table(self, obj, level):
        return "\n".join(f"{name} = {self.pformat(value, level)}" for name, value in obj.items())
