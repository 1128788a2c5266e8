"""
Transforms the raw koine parse tree into the Quill AST from quill_datatypes.
"""

from quill.quill_datatypes import (
    QuillParseError,
    String, Variable, Boolean, Integer, Double,
    BinaryOperator, BinaryOperation, Tuple, FunctionCall, MethodCall,
    Parameter, Block, Function,
    VariableDeclaration, TupleAssignment, FunctionDefinition, FunctionCallStatement,
)


class QuillTransformer:
    def _nodes(self, node) -> list:
        """Tagged child nodes of `node`, flattened in source order."""
        children = node.get('children', []) if isinstance(node, dict) else node
        if isinstance(children, dict):
            # Named children (ast: { name: ... }) keep their insertion order.
            children = list(children.values())
        out = []
        stack = list(children or [])
        while stack:
            item = stack.pop(0)
            if isinstance(item, list):
                stack[0:0] = item
            elif isinstance(item, dict):
                out.append(item)
        return out

    def _text(self, node) -> str:
        return node['text']

    def transform_statement(self, node):
        obj = self.transform(node)
        # A function on a line of its own is a definition.
        if isinstance(obj, Function):
            return FunctionDefinition(obj)
        return obj

    def transform(self, node: object) -> object:
        # Lists: transform each item
        if isinstance(node, list):
            return [self.transform(n) for n in node]

        # Primitives already in final form
        if not isinstance(node, dict):
            return node

        if 'tag' not in node:
            return [self.transform(n) for n in self._nodes(node)]

        tag = node.get('tag')
        nodes = self._nodes(node)

        match tag:
            # Program and statements
            case 'program':
                return [self.transform_statement(n) for n in nodes]
            case 'variable_declaration':
                name, expr = nodes[0], nodes[-1]
                return VariableDeclaration(self._text(name), self.transform(expr))
            case 'tuple_assignment':
                names = [self._text(n) for n in nodes[:-1]]
                return TupleAssignment(names, self.transform(nodes[-1]))
            case 'function_definition':
                return FunctionDefinition(self.transform(nodes[0]))
            case 'call_statement':
                return FunctionCallStatement(self._text(nodes[0]), self._arguments(nodes[1:]))

            # Functions
            case 'function':
                name, params, body = nodes[0], nodes[1], nodes[2]
                return Function(self._text(name), self.transform(params), self.transform(body))
            case 'parameters':
                return [self.transform(n) for n in nodes]
            case 'parameter':
                default = self.transform(nodes[1]) if len(nodes) > 1 else None
                return Parameter(self._text(nodes[0]), default)
            case 'single_line_body' | 'block_body':
                statements = [self.transform_statement(n) for n in nodes[:-1]]
                return Block(statements, self.transform(nodes[-1]))

            # Expressions
            case 'binary_operation':
                left, op, right = nodes
                return BinaryOperation(BinaryOperator(self._text(op)), self.transform(left), self.transform(right))
            case 'tuple':
                return Tuple([self.transform(n) for n in nodes])
            case 'import_expression':
                return MethodCall("import", self._text(nodes[0]), [])
            case 'method_call':
                receiver, method = nodes[0], nodes[1]
                return MethodCall(self._text(receiver), self._text(method), self._arguments(nodes[2:]))
            case 'function_call':
                return FunctionCall(self._text(nodes[0]), self._arguments(nodes[1:]))
            case 'arguments':
                return [self.transform(n) for n in nodes]

            # Atoms
            case 'boolean':
                return Boolean(node['text'] == 'true')
            case 'integer':
                return self._integer(node)
            case 'double':
                return Double(float(node['text']))
            case 'string':
                return String(node['text'][1:-1])
            case 'variable':
                return Variable(node['text'])
            case _:
                raise QuillParseError(f"unexpected parse node '{tag}'")

    def _arguments(self, nodes) -> list:
        if not nodes:
            return []
        return self.transform(nodes[0])

    def _integer(self, node) -> Integer:
        text = node['text']
        value = int(text)
        if not Integer.MIN <= value <= Integer.MAX:
            line = node.get('line'); col = node.get('col')
            raise QuillParseError(f"integer literal {text} out of range (line {line}, col {col})")
        return Integer(value)
