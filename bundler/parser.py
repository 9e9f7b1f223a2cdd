"""
Module parser - turns JavaScript source text into a Lark parse tree.

The parser is the bundler's only view of source syntax: it reports which
module declarations a file contains, and keeps token positions so the
transformer can rewrite the original text in place.
"""
import re
from functools import lru_cache
from typing import NamedTuple, Optional

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken

from bundler.errors import ParseError, get_line_context
from bundler.grammar import EXPORT_DECLARATIONS, IMPORT_DECLARATIONS, module_grammar

SOURCE_TYPES = ("module", "script")

# Declarations that name another module after 'from' (or bare 'import "x"').
SOURCE_DECLARATIONS = IMPORT_DECLARATIONS + ("export_named", "export_all")

_CLOSERS = {"RPAR": "(", "RSQB": "[", "RBRACE": "{"}
_ESCAPE = re.compile(r"\\(u\{[0-9a-fA-F]{1,6}\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])")
_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}
# A backslash before a line break joins the lines
_LINE_CONTINUATIONS = ("\n", "\r\n", "\r", "\u2028", "\u2029")


class ParsedModule(NamedTuple):
    """A parsed source file: the tree plus the text its positions refer to."""
    source: str
    tree: Tree
    source_type: str = "module"
    file_path: Optional[str] = None


@lru_cache(maxsize=None)
def get_parser():
    """Build the LALR parser once; it is stateless between parses."""
    return Lark(
        module_grammar,
        parser='lalr',
        propagate_positions=True,
        maybe_placeholders=False,
    )


def parse_module(source, source_type="module", file_path=None):
    """
    Parse JavaScript source text.

    Args:
        source: Full text of the file
        source_type: Dialect hint, 'module' (import/export allowed) or 'script'
        file_path: Used only to report where an error comes from

    Returns:
        ParsedModule with the Lark tree

    Raises:
        ParseError: If the text is malformed, or uses module syntax as a script
    """
    if source_type not in SOURCE_TYPES:
        raise ValueError(f"Unknown source type {source_type!r}, expected one of {SOURCE_TYPES}")

    try:
        tree = get_parser().parse(source)
    except UnexpectedInput as e:
        line_number = e.line if e.line and e.line > 0 else None
        column = e.column if e.column and e.column > 0 else None
        raise ParseError(
            _describe(e),
            file_path=file_path,
            line_number=line_number,
            column=column,
            context=get_line_context(source, line_number),
            suggestion=_suggest(e),
        ) from e

    if source_type == "script":
        for node in module_declarations(tree):
            token = node.children[0]
            raise ParseError(
                "'import' and 'export' may appear only with sourceType: module",
                file_path=file_path,
                line_number=token.line,
                column=token.column,
                context=get_line_context(source, token.line),
            )

    return ParsedModule(source, tree, source_type, file_path)


def module_declarations(tree):
    """Yield the top-level import/export declarations of a tree, in source order."""
    for node in tree.children:
        if isinstance(node, Tree) and node.data in IMPORT_DECLARATIONS + EXPORT_DECLARATIONS:
            yield node


def collect_dependencies(parsed):
    """
    Return the module specifiers a parsed file depends on, in source order.

    Only static declarations count: 'import ... from', bare 'import', and the
    re-exporting 'export ... from'. Each specifier is listed once.
    """
    dependencies = []
    for node in module_declarations(parsed.tree):
        if node.data not in SOURCE_DECLARATIONS:
            continue
        specifier = declaration_source(node)
        if specifier is not None and specifier not in dependencies:
            dependencies.append(specifier)
    return dependencies


def declaration_source(node):
    """The specifier a declaration imports from, or None for local exports."""
    last = node.children[-1]
    if isinstance(last, Token) and last.type == "STRING":
        return string_value(last)
    return None


def string_value(token):
    """Value of a JavaScript string literal token, with its escapes decoded."""
    return _ESCAPE.sub(_unescape, str(token)[1:-1])


def _unescape(match):
    escape = match.group(1)
    if escape[0] == "u" and len(escape) > 1:
        return chr(int(escape.strip("u{}"), 16))
    if escape[0] == "x" and len(escape) > 1:
        return chr(int(escape[1:], 16))
    if escape in _LINE_CONTINUATIONS:
        return ""
    return _SIMPLE_ESCAPES.get(escape, escape)


def _describe(error):
    if isinstance(error, UnexpectedCharacters):
        return f"Unexpected character {error.char!r}"
    if isinstance(error, UnexpectedToken):
        if error.token.type == "$END":
            return "Unexpected end of input"
        return f"Unexpected token {str(error.token)!r}"
    return "Syntax error"


def _suggest(error):
    """Hint for the most common ways a module fails to parse."""
    if isinstance(error, UnexpectedCharacters) and error.char in "\"'`":
        return "Check for an unterminated string literal"
    if isinstance(error, UnexpectedToken):
        if error.token.type == "$END":
            return "Check for an unclosed bracket, string or comment"
        if error.token.type in _CLOSERS:
            return f"Unmatched {str(error.token)!r}: no opening {_CLOSERS[error.token.type]!r}"
        if error.token.type in ("FROM", "STRING") or "FROM" in error.expected:
            return "Import declarations look like: import { name } from './file.js';"
    return "Check syntax around this line"
