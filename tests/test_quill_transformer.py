import pytest
from pathlib import Path
from koine import Parser

from quill.quill_transformer import QuillTransformer
from quill.quill_datatypes import (
    QuillParseError,
    Variable, Integer, Double, String, Boolean,
    BinaryOperator, BinaryOperation, Tuple, MethodCall,
    Parameter, Block, Function,
    VariableDeclaration, FunctionDefinition, FunctionCallStatement,
)

# --- Fixtures ---

@pytest.fixture(scope="module")
def parser():
    """Loads the Quill grammar and returns a koine Parser instance."""
    grammar_path = Path(__file__).parent / ".." / "quill" / "quill_grammar.yaml"
    return Parser.from_file(str(grammar_path))


@pytest.fixture(scope="module")
def transformer():
    return QuillTransformer()


def raw(parser, source, start_rule=None):
    result = parser.parse(source, start_rule=start_rule)
    assert result['status'] == 'success', result.get('message')
    return result['ast']

# --- Raw tree shape ---

def test_raw_tree_for_declaration(parser):
    tree = raw(parser, "x = 1")
    assert tree['tag'] == 'program'
    [decl] = tree['children']
    assert decl['tag'] == 'variable_declaration'
    assert [c['tag'] for c in decl['children']] == ['identifier', 'integer']
    assert decl['children'][1]['text'] == '1'


def test_raw_tree_discards_punctuation(parser):
    tree = raw(parser, "t = [1, 2]")
    [decl] = tree['children']
    tup = decl['children'][1]
    assert tup['tag'] == 'tuple'
    assert [c['tag'] for c in tup['children']] == ['integer', 'integer']


def test_raw_tree_call_arguments_are_tagged(parser):
    tree = raw(parser, "f()")
    [call] = tree['children']
    assert call['tag'] == 'call_statement'
    assert [c['tag'] for c in call['children']] == ['identifier', 'arguments']
    assert call['children'][1]['children'] == []


def test_raw_tree_operator_is_leaf(parser):
    node = raw(parser, "a != b", start_rule='expression')
    assert node['tag'] == 'binary_operation'
    op = node['children'][1]
    assert op['tag'] == 'operator'
    assert op['text'] == '!='
    assert 'children' not in op

# --- Transformation ---

def test_transform_atoms(parser, transformer):
    assert transformer.transform(raw(parser, "1", 'expression')) == Integer(1)
    assert transformer.transform(raw(parser, "-1.5", 'expression')) == Double(-1.5)
    assert transformer.transform(raw(parser, '"hi"', 'expression')) == String("hi")
    assert transformer.transform(raw(parser, '""', 'expression')) == String("")
    assert transformer.transform(raw(parser, "false", 'expression')) == Boolean(False)
    assert transformer.transform(raw(parser, "abc", 'expression')) == Variable("abc")


def test_transform_binary_operation(parser, transformer):
    node = transformer.transform(raw(parser, "a * 2", 'expression'))
    assert node == BinaryOperation(BinaryOperator.TIMES, Variable("a"), Integer(2))


def test_transform_import(parser, transformer):
    node = transformer.transform(raw(parser, "import math", 'expression'))
    assert node == MethodCall("import", "math", [])
    assert node.is_import


def test_function_statement_becomes_definition(parser, transformer):
    statements = transformer.transform(raw(parser, "id(x) => x"))
    assert statements == [FunctionDefinition(Function("id", [Parameter("x")], Block([], Variable("x"))))]


def test_function_expression_stays_function(parser, transformer):
    statements = transformer.transform(raw(parser, "f = id(x) => x"))
    assert statements == [VariableDeclaration("f", Function("id", [Parameter("x")], Block([], Variable("x"))))]


def test_transform_call_statement(parser, transformer):
    statements = transformer.transform(raw(parser, "f([1, 2], y)"))
    assert statements == [FunctionCallStatement("f", [Tuple([Integer(1), Integer(2)]), Variable("y")])]


def test_integer_out_of_range(parser, transformer):
    tree = raw(parser, "x = -9223372036854775809")
    with pytest.raises(QuillParseError, match="out of range"):
        transformer.transform(tree)


def test_unknown_tag_is_rejected(transformer):
    with pytest.raises(QuillParseError, match="unexpected parse node"):
        transformer.transform({'tag': 'mystery', 'text': '?', 'children': []})
