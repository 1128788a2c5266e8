"""
Source text to Quill AST: the koine grammar plus the transformer.
"""
from pathlib import Path
from typing import List, Optional

import yaml
from koine import Parser

from quill.quill_datatypes import QuillParseError, Statement, Expression
from quill.quill_transformer import QuillTransformer

GRAMMAR_PATH = Path(__file__).parent / "quill_grammar.yaml"

# Block markers matched by the grammar's `indent` and `dedent` rules.
INDENT = "\x0e"
DEDENT = "\x0f"


def load_grammar(path: Path = GRAMMAR_PATH) -> dict:
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def _indent_width(line: str) -> int:
    leading = line[:len(line) - len(line.lstrip(" \t"))]
    return len(leading.expandtabs(8))


def mark_indentation(text: str) -> str:
    """Inserts INDENT/DEDENT markers so the grammar can see block structure.

    A line indented deeper than the current level gets one INDENT in front
    of it; a line that returns to an outer level gets one DEDENT per level
    it closes, and it must land exactly on a level that is still open.
    Levels left open at the end of input are closed there. Lines that start
    inside brackets or a string literal continue the previous line and are
    not marked.
    """
    if INDENT in text or DEDENT in text:
        raise QuillParseError("source contains a reserved control character (\\x0e or \\x0f)")

    indent_stack = [0]
    depth = 0
    in_string = False
    out = []
    for lineno, line in enumerate(text.splitlines(keepends=True), start=1):
        content = line.rstrip("\r\n")
        if depth == 0 and not in_string and content.strip():
            width = _indent_width(content)
            if width > indent_stack[-1]:
                indent_stack.append(width)
                line = INDENT + line
            elif width < indent_stack[-1]:
                closed = 0
                while width < indent_stack[-1]:
                    indent_stack.pop()
                    closed += 1
                if width != indent_stack[-1]:
                    raise QuillParseError(
                        f"unindent does not match any outer indentation level at L{lineno}")
                line = DEDENT * closed + line
        for ch in content:
            if ch == '"':
                in_string = not in_string
            elif in_string:
                continue
            elif ch in "([":
                depth += 1
            elif ch in ")]" and depth:
                depth -= 1
        out.append(line)
    out.append(DEDENT * (len(indent_stack) - 1))
    return "".join(out)


def _clean_message(message: str) -> str:
    message = message.replace(INDENT, "").replace(DEDENT, "")
    return message.replace("\\x0e", "<indent>").replace("\\x0f", "<dedent>")


class QuillParser:
    """Parses Quill source into statements and expressions.

    The koine parser is compiled once per process and shared by every
    instance; the transformer is stateless.
    """

    _parser: Optional[Parser] = None
    _transformer: Optional[QuillTransformer] = None

    def __init__(self):
        if QuillParser._parser is None:
            QuillParser._parser = Parser(load_grammar(), base_path=GRAMMAR_PATH.parent)
        if QuillParser._transformer is None:
            QuillParser._transformer = QuillTransformer()
        self.parser = QuillParser._parser
        self.transformer = QuillParser._transformer

    def _parse_tree(self, text: str, start_rule: Optional[str] = None):
        parse_out = self.parser.parse(mark_indentation(text), start_rule=start_rule)
        if parse_out.get('status') != 'success':
            raise QuillParseError(_clean_message(parse_out.get('message') or "parse failed"))
        return parse_out.get('ast')

    def parse_program(self, text: str) -> List[Statement]:
        """Parses a whole program. The entire input must be consumed."""
        if not text.strip():
            raise QuillParseError("no statements parsed")
        statements = self.transformer.transform(self._parse_tree(text))
        if not statements:
            raise QuillParseError("no statements parsed")
        return statements

    def parse_statement(self, text: str) -> Statement:
        node = self._parse_tree(text.strip(), start_rule='statement')
        return self.transformer.transform_statement(node)

    def parse_expression(self, text: str) -> Expression:
        return self.transformer.transform(self._parse_tree(text.strip(), start_rule='expression'))


def parse_program(text: str) -> List[Statement]:
    return QuillParser().parse_program(text)


def parse_statement(text: str) -> Statement:
    return QuillParser().parse_statement(text)


def parse_expression(text: str) -> Expression:
    return QuillParser().parse_expression(text)
