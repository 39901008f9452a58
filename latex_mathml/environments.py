import regex
import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .config import ConversionOptions
from .errors import (
    InvalidSyntaxError,
    MissingArgumentError,
    UnknownEnvironmentError,
    UnmatchedBraceError,
    UnmatchedEnvironmentError,
)
from .models import ParseContext, ScopeFrame, Token, TokenType
from .nodes import MathMLNode, element, is_empty


logger = logging.getLogger(__name__)


class EnvironmentKind(Enum):
    DISPLAY = "display"
    TABLE = "table"
    FENCED_TABLE = "fenced_table"
    ARRAY = "array"
    CONTAINER = "container"


@dataclass(frozen=True)
class EnvironmentSpec:
    """Registry entry: handler variant plus alignment and fence payload."""
    kind: EnvironmentKind
    column_align: str = ''
    open: str = ''
    close: str = ''
    takes_argument: bool = False


GENERIC_CONTAINER = EnvironmentSpec(EnvironmentKind.CONTAINER)

_LEFT_TABLES = (
    'align', 'align*', 'aligned', 'split', 'multline', 'multline*',
    'eqnarray', 'eqnarray*', 'flalign', 'flalign*'
)
_CENTER_TABLES = ('gather', 'gather*', 'gathered', 'matrix', 'smallmatrix')
_COUNTED_TABLES = ('alignat', 'alignat*', 'alignedat')
_FENCED_MATRICES = {
    'pmatrix': ('(', ')'),
    'bmatrix': ('[', ']'),
    'Bmatrix': ('{', '}'),
    'vmatrix': ('|', '|'),
    'Vmatrix': ('|', '|'),
}
_CONTAINERS = (
    'document', 'abstract', 'center', 'flushleft', 'flushright',
    'quote', 'quotation', 'verse',
    'itemize', 'enumerate', 'description',
    'theorem', 'lemma', 'proof', 'definition', 'corollary', 'proposition',
    'remark', 'example', 'exercise', 'solution',
    'figure', 'table', 'minipage', 'titlepage', 'article', 'book', 'report',
    'letter', 'picture', 'tikzpicture'
)

_COLUMN_ALIGNMENT = {'l': 'left', 'c': 'center', 'r': 'right'}
_BRACED_COLUMN_ARGUMENT = regex.compile(r'\{[^{}]*\}')


def build_environment_registry() -> Mapping[str, EnvironmentSpec]:
    """Build the read-only environment name -> EnvironmentSpec map."""
    registry: Dict[str, EnvironmentSpec] = {}

    for name in ('equation', 'equation*', 'displaymath'):
        registry[name] = EnvironmentSpec(EnvironmentKind.DISPLAY)
    for name in _LEFT_TABLES:
        registry[name] = EnvironmentSpec(EnvironmentKind.TABLE, column_align='left')
    for name in _CENTER_TABLES:
        registry[name] = EnvironmentSpec(EnvironmentKind.TABLE, column_align='center')
    for name in _COUNTED_TABLES:
        registry[name] = EnvironmentSpec(EnvironmentKind.TABLE, column_align='left', takes_argument=True)
    for name, (open_delim, close_delim) in _FENCED_MATRICES.items():
        registry[name] = EnvironmentSpec(
            EnvironmentKind.FENCED_TABLE, column_align='center', open=open_delim, close=close_delim
        )
    registry['cases'] = EnvironmentSpec(
        EnvironmentKind.FENCED_TABLE, column_align='left left', open='{', close=''
    )
    for name in ('array', 'tabular'):
        registry[name] = EnvironmentSpec(EnvironmentKind.ARRAY, takes_argument=True)
    for name in _CONTAINERS:
        registry[name] = GENERIC_CONTAINER

    return MappingProxyType(registry)


def column_alignment(column_spec: str) -> str:
    """Translate an array column spec such as ``l|cr`` to a columnalign value."""
    stripped = _BRACED_COLUMN_ARGUMENT.sub('', column_spec)
    alignments = [_COLUMN_ALIGNMENT[char] for char in stripped if char in _COLUMN_ALIGNMENT]
    return ' '.join(alignments) or 'center'


def _is_cell_separator(token: Token) -> bool:
    return token.kind is TokenType.SYMBOL and token.value == '&'


def _is_row_separator(token: Token) -> bool:
    return token.kind is TokenType.COMMAND and token.value == '\\\\'


def _describe(token: Optional[Token]) -> str:
    if token is None:
        return 'end of input'
    return f"{token.kind.value} {token.value!r}"


def _scan_name(tokens: Sequence[Token], index: int) -> Tuple[Optional[str], int]:
    """Read ``{name}`` starting at ``index`` without raising."""
    if index >= len(tokens) or not tokens[index].is_brace('{'):
        return None, index

    letters = []
    index += 1
    while index < len(tokens):
        token = tokens[index]
        if token.is_brace('}'):
            if not letters:
                return None, index + 1
            return ''.join(letters), index + 1
        if token.kind is not TokenType.SYMBOL or not (token.value.isalpha() or token.value == '*'):
            return None, index
        letters.append(token.value)
        index += 1

    return None, index


class EnvironmentParser:
    """Parse ``\\begin{name} ... \\end{name}`` blocks."""

    def __init__(self, expressions, registry: Mapping[str, EnvironmentSpec]):
        self.expressions = expressions
        self.registry = registry
        self._handlers: Dict[EnvironmentKind, Callable] = {
            EnvironmentKind.DISPLAY: self._parse_display,
            EnvironmentKind.TABLE: self._parse_table_environment,
            EnvironmentKind.FENCED_TABLE: self._parse_fenced_table,
            EnvironmentKind.ARRAY: self._parse_array,
            EnvironmentKind.CONTAINER: self._parse_container,
        }

    def parse_environment(self, context: ParseContext, options: ConversionOptions) -> MathMLNode:
        """Parse the environment starting at the cursor.

        Args:
            context: parse state positioned on ``\\begin``
            options: conversion options

        Returns:
            The environment's node; the cursor ends after ``\\end{name}``
        """
        begin = context.consume()
        if begin is None or not begin.is_command('\\begin'):
            raise InvalidSyntaxError.from_token(f"Expected \\begin, found {_describe(begin)}", begin)

        name = self._read_name(context, begin)

        spec = self.registry.get(name)
        if spec is None:
            if options.strict_mode:
                raise UnknownEnvironmentError(
                    f"Unknown environment: {name}",
                    text=name,
                    offset=begin.offset,
                    line=begin.line,
                    column=begin.column
                )
            logger.info(f"Unknown environment '{name}' at offset {begin.offset}, using generic container")
            spec = GENERIC_CONTAINER

        end = self.find_matching_end(context, name, begin)

        if options.debug_mode:
            logger.debug(f"Environment '{name}' ({spec.kind.value}) from offset {begin.offset} to {end.offset}")

        context.open_scope(ScopeFrame('environment', name, begin), options.max_nesting_depth)
        enclosing = context.environment
        context.environment = name

        argument = None
        if spec.takes_argument:
            argument = self._read_argument(context, name, begin, end)

        node = self._handlers[spec.kind](context, options, name, spec, end, argument)

        context.environment = enclosing
        context.close_scope()
        self._consume_end(context, name, end)

        return node

    def _read_name(self, context: ParseContext, command: Token) -> str:
        """Read ``{name}`` after \\begin or \\end, checking each piece."""
        opening = context.consume()
        if opening is None or not opening.is_brace('{'):
            raise InvalidSyntaxError.from_token(
                f"Expected '{{' after {command.value}, found {_describe(opening)}",
                opening if opening is not None else command
            )

        letters: List[str] = []
        while True:
            token = context.consume()
            if token is None:
                raise UnmatchedBraceError.from_token("Unmatched '{' in environment name", opening)
            if token.is_brace('}'):
                break
            if token.kind is TokenType.SYMBOL and (token.value.isalpha() or token.value == '*'):
                letters.append(token.value)
                continue
            raise InvalidSyntaxError.from_token(
                f"Expected environment name after {command.value}, found {_describe(token)}",
                token
            )

        if not letters:
            raise InvalidSyntaxError.from_token(
                f"Expected environment name after {command.value}, found '}}'",
                opening
            )

        return ''.join(letters)

    def find_matching_end(self, context: ParseContext, name: str, begin: Token) -> Token:
        """Locate the ``\\end`` closing ``name``, skipping nested pairs."""
        tokens = context.tokens
        open_environments: List[Tuple[str, Token]] = []
        index = context.position

        while index < len(tokens):
            token = tokens[index]

            if token.is_command('\\begin') or token.is_command('\\end'):
                inner, next_index = _scan_name(tokens, index + 1)
                if inner is None:
                    # malformed; the real parse reports it
                    index += 1
                    continue

                if token.value == '\\begin':
                    open_environments.append((inner, token))
                elif open_environments:
                    open_name, open_token = open_environments.pop()
                    if inner != open_name:
                        raise self._unclosed(open_name, open_token, f"closed by \\end{{{inner}}}")
                elif inner == name:
                    return token
                else:
                    raise self._unclosed(name, begin, f"closed by \\end{{{inner}}}")

                index = next_index
                continue

            index += 1

        if open_environments:
            open_name, open_token = open_environments[-1]
            raise self._unclosed(open_name, open_token, "never closed")
        raise self._unclosed(name, begin, "never closed")

    @staticmethod
    def _unclosed(name: str, begin: Token, detail: str) -> UnmatchedEnvironmentError:
        return UnmatchedEnvironmentError(
            f"Environment '{name}' opened at offset {begin.offset} {detail}",
            text=name,
            offset=begin.offset,
            line=begin.line,
            column=begin.column
        )

    def _read_argument(self, context: ParseContext, name: str, begin: Token, end: Token) -> str:
        token = context.peek()
        if token is None or token is end or not token.is_brace('{'):
            raise MissingArgumentError(
                f"Missing argument 1 for environment {name}",
                text=name,
                offset=begin.offset,
                line=begin.line,
                column=begin.column,
                command=name,
                argument_index=1
            )
        return self.expressions.read_raw_group(context)

    def _consume_end(self, context: ParseContext, name: str, end: Token):
        token = context.consume()
        if token is not end:
            raise InvalidSyntaxError.from_token(
                f"Expected \\end{{{name}}}, found {_describe(token)}",
                token
            )
        closing_name = self._read_name(context, token)
        if closing_name != name:
            raise InvalidSyntaxError.from_token(
                f"Expected \\end{{{name}}}, found \\end{{{closing_name}}}",
                token
            )

    def _parse_content(self, context: ParseContext, options: ConversionOptions, end: Token) -> MathMLNode:
        return self.expressions.parse_expression(context, options, stop=lambda token: token is end)

    def parse_rows(self, context: ParseContext, options: ConversionOptions,
                   end: Token) -> List[List[MathMLNode]]:
        """Split content on ``&`` and ``\\\\`` at this level into rows of cells."""
        def stop(token: Token) -> bool:
            return token is end or _is_cell_separator(token) or _is_row_separator(token)

        rows: List[List[MathMLNode]] = []
        cells: List[MathMLNode] = []

        while True:
            cells.append(self.expressions.parse_expression(context, options, stop=stop))

            token = context.peek()
            if token is None or token is end:
                rows.append(cells)
                break

            context.consume()
            if _is_row_separator(token):
                # \\[2pt] spacing hint
                self.expressions.parse_optional_argument(context, options)
                rows.append(cells)
                cells = []

        # a trailing \\ leaves one empty row behind
        if len(rows) > 1 and len(rows[-1]) == 1 and is_empty(rows[-1][0]):
            rows.pop()

        return rows

    def build_table(self, rows: List[List[MathMLNode]], column_align: str) -> MathMLNode:
        table_rows = [
            element('mtr', [element('mtd', [cell]) for cell in cells])
            for cells in rows
        ]
        attributes = {'columnalign': column_align} if column_align else {}
        return element('mtable', table_rows, attributes)

    def _parse_display(self, context, options, name, spec, end, argument) -> MathMLNode:
        content = self._parse_content(context, options, end)
        return element('mstyle', [content], {'displaystyle': 'true'})

    def _parse_table_environment(self, context, options, name, spec, end, argument) -> MathMLNode:
        rows = self.parse_rows(context, options, end)
        return self.build_table(rows, spec.column_align)

    def _parse_fenced_table(self, context, options, name, spec, end, argument) -> MathMLNode:
        table = self._parse_table_environment(context, options, name, spec, end, argument)
        return element('mfenced', [table], {'open': spec.open, 'close': spec.close})

    def _parse_array(self, context, options, name, spec, end, argument) -> MathMLNode:
        rows = self.parse_rows(context, options, end)
        return self.build_table(rows, column_alignment(argument or ''))

    def _parse_container(self, context, options, name, spec, end, argument) -> MathMLNode:
        content = self._parse_content(context, options, end)
        return element('mrow', [content], {'class': f"latex-{name}"})


__all__ = [
    'EnvironmentKind',
    'EnvironmentSpec',
    'EnvironmentParser',
    'GENERIC_CONTAINER',
    'build_environment_registry',
    'column_alignment',
]
