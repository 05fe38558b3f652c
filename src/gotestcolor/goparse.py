"""Lightweight Go source scanning for the test index.

Only the parts of the grammar the index needs are understood: the package
clause and top-level ``func`` declarations. Comments, interpreted and raw
string literals and rune literals are tokenized properly so that braces or
the word ``func`` inside them never confuse the declaration scan.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

from .exceptions import GoSyntaxError

GENERATED_MARKER = "DO NOT EDIT"
# permitted once, as the first character of a source file
BYTE_ORDER_MARK = "\ufeff"

_TOKEN_RE = re.compile(
    r"""
      (?P<ws>[ \t\r\f\v]+)
    | (?P<newline>\n)
    | (?P<comment>//[^\n]*|/\*.*?\*/)
    | (?P<raw_string>`[^`]*`)
    | (?P<string>"(?:\\.|[^"\\\n])*")
    | (?P<rune>'(?:\\.|[^'\\\n])+')
    | (?P<ident>[^\W\d]\w*)
    | (?P<number>\.?\d(?:[eEpP][+-]|[\w.])*)
    | (?P<unterminated>/\*|["'`])
    | (?P<op>[^\s\w])
    """,
    re.VERBOSE | re.DOTALL,
)

_BRACKETS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(_BRACKETS.values())


class Token(NamedTuple):
    kind: str
    value: str
    line: int


@dataclass
class FuncDecl:
    """A top-level function or method declaration."""

    name: str
    line: int
    receiver: Optional[str] = None

    @property
    def is_method(self) -> bool:
        return self.receiver is not None


@dataclass
class GoFile:
    """Declarations found in one Go source file."""

    package: str
    functions: List[FuncDecl] = field(default_factory=list)
    filename: Optional[str] = None

    @property
    def function_names(self) -> List[str]:
        return [func.name for func in self.functions]


def tokenize(source: str, filename: Optional[str] = None) -> Iterator[Token]:
    """
    Yield the significant tokens of a Go source text

    Whitespace and comments are dropped. Unterminated comments or literals
    raise :class:`GoSyntaxError`.
    """
    line = 1
    pos = 1 if source.startswith(BYTE_ORDER_MARK) else 0
    length = len(source)
    while pos < length:
        match = _TOKEN_RE.match(source, pos)
        if match is None:  # pragma: no cover - the op group matches any other char
            raise GoSyntaxError(f"unexpected character {source[pos]!r}", filename, line)
        kind = match.lastgroup
        value = match.group()
        if kind == "unterminated":
            what = "comment" if value == "/*" else "literal"
            raise GoSyntaxError(f"unterminated {what}", filename, line)
        if kind not in ("ws", "newline", "comment"):
            yield Token(kind, value, line)
        line += value.count("\n")
        pos = match.end()


def _expect_package(tokens: Iterator[Token], filename: Optional[str]) -> str:
    keyword = next(tokens, None)
    if keyword is None or keyword.kind != "ident" or keyword.value != "package":
        line = keyword.line if keyword else None
        raise GoSyntaxError("expected 'package' clause", filename, line)
    name = next(tokens, None)
    if name is None or name.kind != "ident":
        raise GoSyntaxError("expected package name", filename, keyword.line)
    return name.value


def parse_package_clause(source: str, filename: Optional[str] = None) -> str:
    """
    Return the package name without scanning past the package clause

    Args:
        source: Go source text
        filename: Name used in error messages

    Returns:
        The package name

    Raises:
        GoSyntaxError: If the file does not start with a package clause
    """
    return _expect_package(tokenize(source, filename), filename)


def _skip_group(tokens: Sequence[Token], start: int, filename: Optional[str]) -> int:
    """Return the index just past the bracket group opening at ``start``."""
    depth = 0
    for index in range(start, len(tokens)):
        value = tokens[index].value
        if tokens[index].kind != "op":
            continue
        if value in _BRACKETS:
            depth += 1
        elif value in _CLOSERS:
            depth -= 1
            if depth == 0:
                return index + 1
    raise GoSyntaxError(f"unclosed {tokens[start].value!r}", filename, tokens[start].line)


def _receiver_type(inner: Sequence[Token]) -> Optional[str]:
    names = []
    for token in inner:
        if token.value == "[":
            break
        if token.kind == "ident":
            names.append(token.value)
    return names[-1] if names else None


def _parse_func_header(
    tokens: Sequence[Token], pos: int, filename: Optional[str]
) -> Tuple[Optional[FuncDecl], int]:
    keyword = tokens[pos]
    cursor = pos + 1
    receiver = None
    if cursor < len(tokens) and tokens[cursor].value == "(":
        end = _skip_group(tokens, cursor, filename)
        receiver = _receiver_type(tokens[cursor + 1:end - 1])
        cursor = end
    if cursor < len(tokens) and tokens[cursor].kind == "ident":
        return FuncDecl(tokens[cursor].value, keyword.line, receiver), cursor + 1
    # a function literal or type, not a declaration
    return None, pos + 1


def parse_file(source: str, filename: Optional[str] = None) -> GoFile:
    """
    Parse a Go source file into its package name and top-level functions

    Bracket nesting is checked across the whole file, so truncated or
    mismatched sources are rejected rather than half-indexed.

    Args:
        source: Go source text
        filename: Name used in error messages

    Returns:
        GoFile with the package name and declarations in source order

    Raises:
        GoSyntaxError: On a missing package clause, an unterminated literal
            or comment, or unbalanced brackets
    """
    tokens = list(tokenize(source, filename))
    package = _expect_package(iter(tokens), filename)
    result = GoFile(package=package, filename=filename)

    stack: List[Token] = []
    previous: Optional[Token] = None
    pos = 2
    while pos < len(tokens):
        token = tokens[pos]
        if token.kind == "op" and token.value in _BRACKETS:
            stack.append(token)
        elif token.kind == "op" and token.value in _CLOSERS:
            if not stack or _BRACKETS[stack[-1].value] != token.value:
                raise GoSyntaxError(f"unexpected {token.value!r}", filename, token.line)
            stack.pop()
        elif (
            not stack
            and token.kind == "ident"
            and token.value == "func"
            and (previous is None or previous.line < token.line or previous.value == ";")
        ):
            decl, next_pos = _parse_func_header(tokens, pos, filename)
            if decl is not None:
                result.functions.append(decl)
                previous = tokens[next_pos - 1]
                pos = next_pos
                continue
        previous = token
        pos += 1

    if stack:
        raise GoSyntaxError(f"unclosed {stack[-1].value!r}", filename, stack[-1].line)
    return result


def has_function(source: str, filename: Optional[str] = None) -> bool:
    """True if the source contains a ``func`` keyword outside comments and literals"""
    return any(
        token.kind == "ident" and token.value == "func"
        for token in tokenize(source, filename)
    )


def is_generated(source: str) -> bool:
    """True for machine-generated files carrying the ``DO NOT EDIT`` marker"""
    return GENERATED_MARKER in source
