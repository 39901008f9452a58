import regex
import logging
from typing import Callable, Dict, List, Mapping, NamedTuple, Optional

from .commands import CommandKind, CommandParser, CommandSpec
from .config import ConversionOptions
from .environments import EnvironmentParser, EnvironmentSpec
from .errors import (
    InvalidSyntaxError,
    LaTeXError,
    MissingArgumentError,
    UnexpectedTokenError,
    UnmatchedBraceError,
    UnmatchedBracketError,
    UnmatchedEnvironmentError,
)
from .models import ParseContext, ScopeFrame, Token, TokenType
from .nodes import (
    ElementNode,
    MathMLNode,
    collapse,
    element,
    identifier,
    number,
    operator,
    row,
    slot,
    text_element,
)
from .symbols import SymbolTable


logger = logging.getLogger(__name__)


StopCondition = Callable[[Token], bool]

SCRIPT_MARKERS = {'^': 'superscript', '_': 'subscript'}

_TEXT_ESCAPE = regex.compile(r'\\([$%&#_{}])')
_WHITESPACE_RUN = regex.compile(r'\s+')


class _ScriptBinding(NamedTuple):
    node: ElementNode
    base: MathMLNode
    scripts: Dict[str, MathMLNode]


def closer_kind(token: Token) -> Optional[str]:
    """Scope kind closed by this token, if it is a closing token."""
    if token.kind is TokenType.BRACE and token.value == '}':
        return 'brace'
    if token.kind is TokenType.BRACKET and token.value == ']':
        return 'bracket'
    if token.kind is TokenType.COMMAND:
        if token.value == '\\end':
            return 'environment'
        if token.value == '\\right':
            return 'left'
    return None


def _is_paren(node: MathMLNode, char: str) -> bool:
    return isinstance(node, ElementNode) and node.name == 'mo' and node.text == char


def _is_closing_brace(token: Token) -> bool:
    return token.kind is TokenType.BRACE and token.value == '}'


def _is_closing_bracket(token: Token) -> bool:
    return token.kind is TokenType.BRACKET and token.value == ']'


class ExpressionParser:
    """Drive token-by-token parsing and combine results into rows."""

    def __init__(self, command_registry: Mapping[str, CommandSpec],
                 environment_registry: Mapping[str, EnvironmentSpec],
                 symbols: SymbolTable):
        self.symbols = symbols
        self.operator_symbols = symbols.category('symbol_operators')
        self.commands = CommandParser(self, command_registry)
        self.environments = EnvironmentParser(self, environment_registry)

    def parse_expression(self, context: ParseContext, options: ConversionOptions,
                         stop: Optional[StopCondition] = None) -> MathMLNode:
        """Parse until end of input or ``stop`` matches the next token.

        Args:
            context: parse state, advanced past everything consumed
            options: conversion options
            stop: predicate for the token that ends this expression; it is
                not consumed

        Returns:
            Empty text for no children, the single child, or an mrow
        """
        children: List[MathMLNode] = []
        last_script: Optional[_ScriptBinding] = None

        while not context.at_end():
            token = context.peek()

            if stop is not None and stop(token):
                break

            if closer_kind(token) is not None:
                self.raise_misplaced_closer(context, token)

            if token.kind is TokenType.SYMBOL and token.value in SCRIPT_MARKERS:
                last_script = self._bind_script(context, options, children, last_script, stop)
                continue

            limits = self._limits_spec(token)
            if limits is not None:
                context.consume()
                self._apply_limits(children, token, limits)
                continue

            children.append(self.parse_atom(context, options))
            last_script = None

        return collapse(children)

    def parse_atom(self, context: ParseContext, options: ConversionOptions) -> MathMLNode:
        """Parse one unit starting at the cursor."""
        token = context.peek()
        if token is None:
            raise UnexpectedTokenError("Unexpected end of input")

        if options.debug_mode:
            logger.debug(f"Parsing {token.kind.value} {token.value!r} at offset {token.offset}")

        if token.kind is TokenType.COMMAND:
            node = self.commands.parse_command(context, options)

        elif token.kind is TokenType.SYMBOL:
            context.consume()
            node = self.classify_symbol(token.value)

        elif token.kind is TokenType.NUMBER:
            context.consume()
            node = number(token.value)

        elif token.kind is TokenType.BRACE:
            if token.value != '{':
                self.raise_misplaced_closer(context, token)
            node = self.parse_group(context, options)

        elif token.kind is TokenType.BRACKET:
            if token.value != '[':
                self.raise_misplaced_closer(context, token)
            node = self.parse_bracket_group(context, options)

        elif token.kind is TokenType.TEXT:
            context.consume()
            node = text_element(token.value)

        else:
            raise UnexpectedTokenError.from_token(f"Unexpected {token.kind.value} token", token)

        if options.debug_mode and isinstance(node, ElementNode):
            node.attributes.setdefault('data-offset', str(token.offset))

        return node

    def classify_symbol(self, value: str) -> MathMLNode:
        """Operator, single-letter variable or generic text."""
        if value in self.operator_symbols:
            return operator(self.operator_symbols[value])
        if value.isalpha():
            return identifier(value)
        return text_element(value)

    # Groups

    def parse_group(self, context: ParseContext, options: ConversionOptions) -> MathMLNode:
        """Parse ``{ ... }`` and return its collapsed content."""
        opening = context.consume()
        if opening is None or not opening.is_brace('{'):
            raise UnexpectedTokenError.from_token("Expected '{'", opening)

        context.open_scope(ScopeFrame('brace', '{', opening), options.max_nesting_depth)
        content = self.parse_expression(context, options, stop=_is_closing_brace)

        if context.at_end():
            raise UnmatchedBraceError.from_token("Unmatched '{'", opening)

        context.consume()
        context.close_scope()
        return content

    def parse_bracket_content(self, context: ParseContext, options: ConversionOptions) -> MathMLNode:
        """Parse ``[ ... ]`` and return its collapsed content."""
        opening = context.consume()
        if opening is None or not opening.is_bracket('['):
            raise UnexpectedTokenError.from_token("Expected '['", opening)

        context.open_scope(ScopeFrame('bracket', '[', opening), options.max_nesting_depth)
        content = self.parse_expression(context, options, stop=_is_closing_bracket)

        if context.at_end():
            raise UnmatchedBracketError.from_token("Unmatched '['", opening)

        context.consume()
        context.close_scope()
        return content

    def parse_bracket_group(self, context: ParseContext, options: ConversionOptions) -> MathMLNode:
        content = self.parse_bracket_content(context, options)
        return element('mfenced', [content], {'open': '[', 'close': ']'})

    def parse_optional_argument(self, context: ParseContext,
                                options: ConversionOptions) -> Optional[MathMLNode]:
        """Parse a ``[ ... ]`` argument if one follows the cursor."""
        token = context.peek()
        if token is not None and token.is_bracket('['):
            return self.parse_bracket_content(context, options)
        return None

    def read_raw_group(self, context: ParseContext) -> str:
        """Consume a brace group and return its source text unparsed."""
        opening = context.peek()
        if opening is None or not opening.is_brace('{'):
            raise UnexpectedTokenError.from_token("Expected '{'", opening)

        depth = 0
        for index in range(context.position, len(context.tokens)):
            token = context.tokens[index]
            if token.is_brace('{'):
                depth += 1
            elif token.is_brace('}'):
                depth -= 1
                if depth == 0:
                    context.position = index + 1
                    return context.source[opening.offset + 1:token.offset]

        raise UnmatchedBraceError.from_token("Unmatched '{'", opening)

    @staticmethod
    def normalize_text(raw: str, options: ConversionOptions) -> str:
        """Unescape text-mode specials and collapse whitespace unless preserved."""
        content = _TEXT_ESCAPE.sub(r'\1', raw)
        if not options.preserve_whitespace:
            content = _WHITESPACE_RUN.sub(' ', content)
        return content

    # Scripts

    def _bind_script(self, context: ParseContext, options: ConversionOptions,
                     children: List[MathMLNode], last_script: Optional[_ScriptBinding],
                     stop: Optional[StopCondition]) -> _ScriptBinding:
        marker = context.consume()

        if not children:
            raise MissingArgumentError.from_token(
                f"'{marker.value}' has no base",
                marker,
                command=marker.value,
                argument_index=0
            )

        argument = self.parse_script_argument(context, options, marker, stop)

        if last_script is not None and last_script.node is children[-1]:
            if marker.value in last_script.scripts:
                raise InvalidSyntaxError.from_token(f"Double {SCRIPT_MARKERS[marker.value]}", marker)
            base = last_script.base
            scripts = dict(last_script.scripts)
        else:
            self._group_parenthesized(children)
            base = slot(children[-1])
            scripts = {}

        scripts[marker.value] = argument
        node = self._script_node(base, scripts.get('_'), scripts.get('^'))
        children[-1] = node
        return _ScriptBinding(node, base, scripts)

    def parse_script_argument(self, context: ParseContext, options: ConversionOptions,
                              marker: Token, stop: Optional[StopCondition] = None) -> MathMLNode:
        """Parse the single unit a ``^`` or ``_`` applies to."""
        token = context.peek()

        if (token is None
                or (stop is not None and stop(token))
                or closer_kind(token) is not None
                or (token.kind is TokenType.SYMBOL and token.value in SCRIPT_MARKERS)):
            raise MissingArgumentError.from_token(
                f"Missing argument for '{marker.value}'",
                marker,
                command=marker.value,
                argument_index=1
            )

        if token.is_brace('{'):
            return slot(self.parse_group(context, options))
        return self.parse_atom(context, options)

    @staticmethod
    def _group_parenthesized(children: List[MathMLNode]):
        """Fold a trailing ``( ... )`` run into one row so it can serve as a base."""
        if not _is_paren(children[-1], ')'):
            return

        depth = 0
        for index in range(len(children) - 1, -1, -1):
            child = children[index]
            if _is_paren(child, ')'):
                depth += 1
            elif _is_paren(child, '('):
                depth -= 1
                if depth == 0:
                    children[index:] = [row(children[index:])]
                    return

    def _limits_spec(self, token: Token) -> Optional[CommandSpec]:
        if token.kind is not TokenType.COMMAND:
            return None
        spec = self.commands.registry.get(token.value)
        if spec is not None and spec.kind is CommandKind.LIMITS:
            return spec
        return None

    @staticmethod
    def _apply_limits(children: List[MathMLNode], token: Token, spec: CommandSpec):
        """Switch the preceding operator between limit and script placement."""
        target = children[-1] if children else None
        if isinstance(target, ElementNode) and target.name == 'mo':
            target.attributes['movablelimits'] = spec.value
        else:
            logger.debug(f"{token.value} at offset {token.offset} does not follow an operator, ignored")

    @staticmethod
    def _takes_limits(base: MathMLNode) -> bool:
        return (isinstance(base, ElementNode)
                and base.name == 'mo'
                and base.attributes.get('movablelimits') == 'true')

    def _script_node(self, base: MathMLNode, subscript: Optional[MathMLNode],
                     superscript: Optional[MathMLNode]) -> ElementNode:
        limits = self._takes_limits(base)

        if subscript is not None and superscript is not None:
            return element('munderover' if limits else 'msubsup', [base, subscript, superscript])
        if subscript is not None:
            return element('munder' if limits else 'msub', [base, subscript])
        return element('mover' if limits else 'msup', [base, superscript])

    # Closers

    def raise_misplaced_closer(self, context: ParseContext, token: Token):
        """Raise for a closing token that does not end the current expression.

        If a scope of the closer's kind is open further out, the innermost
        open scope was never closed; otherwise the closer itself is stray.
        """
        kind = closer_kind(token)
        if kind is not None and context.innermost(kind) is not None:
            raise self._unclosed_error(context.innermost())
        raise self._stray_error(token, kind)

    @staticmethod
    def _unclosed_error(frame: ScopeFrame) -> LaTeXError:
        opening = frame.token
        if frame.kind == 'brace':
            return UnmatchedBraceError.from_token("Unmatched '{'", opening)
        if frame.kind == 'bracket':
            return UnmatchedBracketError.from_token("Unmatched '['", opening)
        if frame.kind == 'environment':
            return UnmatchedEnvironmentError(
                f"Environment '{frame.name}' is not closed",
                text=frame.name,
                offset=opening.offset,
                line=opening.line,
                column=opening.column
            )
        return InvalidSyntaxError.from_token("Missing \\right for \\left", opening)

    @staticmethod
    def _stray_error(token: Token, kind: Optional[str]) -> LaTeXError:
        if kind == 'brace':
            return UnmatchedBraceError.from_token("Unexpected '}'", token)
        if kind == 'bracket':
            return UnmatchedBracketError.from_token("Unexpected ']'", token)
        if kind == 'environment':
            return UnmatchedEnvironmentError.from_token("\\end without matching \\begin", token)
        if kind == 'left':
            return InvalidSyntaxError.from_token("\\right without matching \\left", token)
        return UnexpectedTokenError.from_token(f"Unexpected token {token.value!r}", token)


__all__ = ['ExpressionParser', 'SCRIPT_MARKERS', 'closer_kind']
