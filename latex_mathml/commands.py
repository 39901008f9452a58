import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional

from .config import ConversionOptions
from .errors import (
    InvalidSyntaxError,
    MissingArgumentError,
    UnexpectedTokenError,
    UnknownCommandError,
)
from .models import ParseContext, ScopeFrame, Token, TokenType
from .nodes import (
    MathMLNode,
    collapse,
    element,
    identifier,
    is_empty,
    operator,
    row,
    slot,
    text_element,
)
from .symbols import STRETCHY_ACCENTS, SymbolTable


logger = logging.getLogger(__name__)


class CommandKind(Enum):
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    FENCE = "fence"
    LARGE_OPERATOR = "large_operator"
    INTEGRAL = "integral"
    FUNCTION = "function"
    LIMIT_FUNCTION = "limit_function"
    SPACE = "space"
    SIZED_SPACE = "sized_space"
    LINE_BREAK = "line_break"
    FRACTION = "fraction"
    BINOMIAL = "binomial"
    SQRT = "sqrt"
    ROOT = "root"
    STYLE = "style"
    TEXT = "text"
    OPERATOR_NAME = "operator_name"
    ACCENT = "accent"
    UNDER_ACCENT = "under_accent"
    OVERSET = "overset"
    UNDERSET = "underset"
    ENCLOSE = "enclose"
    PHANTOM = "phantom"
    PMOD = "pmod"
    LEFT = "left"
    MIDDLE = "middle"
    BIG = "big"
    LIMITS = "limits"
    ENVIRONMENT = "environment"
    CLOSER = "closer"


@dataclass(frozen=True)
class CommandSpec:
    """Registry entry: the handler variant plus its fixed payload."""
    kind: CommandKind
    value: str = ''


# symbol-table category -> handler variant for zero-argument commands
_CATEGORY_KINDS = (
    ('greek_letters', CommandKind.IDENTIFIER),
    ('letterlike', CommandKind.IDENTIFIER),
    ('escapes', CommandKind.IDENTIFIER),
    ('operators', CommandKind.OPERATOR),
    ('fences', CommandKind.FENCE),
    ('large_operators', CommandKind.LARGE_OPERATOR),
    ('integrals', CommandKind.INTEGRAL),
    ('functions', CommandKind.FUNCTION),
    ('limit_functions', CommandKind.LIMIT_FUNCTION),
    ('spacing', CommandKind.SPACE),
    ('font_variants', CommandKind.STYLE),
    ('text_variants', CommandKind.TEXT),
    ('accents', CommandKind.ACCENT),
    ('under_accents', CommandKind.UNDER_ACCENT),
    ('enclosures', CommandKind.ENCLOSE),
    ('delimiter_sizes', CommandKind.BIG),
)

_STRUCTURAL_COMMANDS = {
    '\\frac': CommandSpec(CommandKind.FRACTION),
    '\\dfrac': CommandSpec(CommandKind.FRACTION, 'true'),
    '\\cfrac': CommandSpec(CommandKind.FRACTION, 'true'),
    '\\tfrac': CommandSpec(CommandKind.FRACTION, 'false'),
    '\\binom': CommandSpec(CommandKind.BINOMIAL),
    '\\sqrt': CommandSpec(CommandKind.SQRT),
    '\\root': CommandSpec(CommandKind.ROOT),
    '\\operatorname': CommandSpec(CommandKind.OPERATOR_NAME),
    '\\hspace': CommandSpec(CommandKind.SIZED_SPACE),
    '\\overset': CommandSpec(CommandKind.OVERSET),
    '\\stackrel': CommandSpec(CommandKind.OVERSET),
    '\\underset': CommandSpec(CommandKind.UNDERSET),
    '\\phantom': CommandSpec(CommandKind.PHANTOM),
    '\\pmod': CommandSpec(CommandKind.PMOD),
    '\\left': CommandSpec(CommandKind.LEFT),
    '\\middle': CommandSpec(CommandKind.MIDDLE),
    '\\limits': CommandSpec(CommandKind.LIMITS, 'true'),
    '\\nolimits': CommandSpec(CommandKind.LIMITS, 'false'),
    '\\\\': CommandSpec(CommandKind.LINE_BREAK),
    '\\begin': CommandSpec(CommandKind.ENVIRONMENT),
    '\\end': CommandSpec(CommandKind.CLOSER),
    '\\right': CommandSpec(CommandKind.CLOSER),
}

# \left< and \right> mean angle brackets
_DELIMITER_ALIASES = {'<': '⟨', '>': '⟩'}


def build_command_registry(symbols: SymbolTable) -> Mapping[str, CommandSpec]:
    """Build the read-only command name -> CommandSpec map."""
    registry: Dict[str, CommandSpec] = {}

    for category, kind in _CATEGORY_KINDS:
        for name, value in symbols.category(category).items():
            registry[name] = CommandSpec(kind, value)

    registry.update(_STRUCTURAL_COMMANDS)

    logger.debug(f"Built command registry with {len(registry)} commands")
    return MappingProxyType(registry)


def _is_right(token: Token) -> bool:
    return token.kind is TokenType.COMMAND and token.value == '\\right'


class CommandParser:
    """Dispatch command tokens to their handlers."""

    def __init__(self, expressions, registry: Mapping[str, CommandSpec]):
        self.expressions = expressions
        self.registry = registry
        self._handlers: Dict[CommandKind, Callable] = {
            CommandKind.IDENTIFIER: self._parse_identifier,
            CommandKind.OPERATOR: self._parse_operator,
            CommandKind.FENCE: self._parse_fence,
            CommandKind.LARGE_OPERATOR: self._parse_large_operator,
            CommandKind.INTEGRAL: self._parse_integral,
            CommandKind.FUNCTION: self._parse_identifier,
            CommandKind.LIMIT_FUNCTION: self._parse_limit_function,
            CommandKind.SPACE: self._parse_space,
            CommandKind.SIZED_SPACE: self._parse_sized_space,
            CommandKind.LINE_BREAK: self._parse_line_break,
            CommandKind.FRACTION: self._parse_fraction,
            CommandKind.BINOMIAL: self._parse_binomial,
            CommandKind.SQRT: self._parse_sqrt,
            CommandKind.ROOT: self._parse_root,
            CommandKind.STYLE: self._parse_style,
            CommandKind.TEXT: self._parse_text,
            CommandKind.OPERATOR_NAME: self._parse_operator_name,
            CommandKind.ACCENT: self._parse_accent,
            CommandKind.UNDER_ACCENT: self._parse_under_accent,
            CommandKind.OVERSET: self._parse_overset,
            CommandKind.UNDERSET: self._parse_underset,
            CommandKind.ENCLOSE: self._parse_enclose,
            CommandKind.PHANTOM: self._parse_phantom,
            CommandKind.PMOD: self._parse_pmod,
            CommandKind.LEFT: self._parse_left,
            CommandKind.MIDDLE: self._parse_middle,
            CommandKind.BIG: self._parse_big,
        }

    def parse_command(self, context: ParseContext, options: ConversionOptions) -> MathMLNode:
        """Parse the command at the cursor and everything it consumes."""
        token = context.peek()
        if token is None or token.kind is not TokenType.COMMAND:
            raise UnexpectedTokenError.from_token("Expected a command", token)

        spec = self.registry.get(token.value)
        if spec is None:
            return self._parse_unknown(context, options, token)

        if spec.kind is CommandKind.ENVIRONMENT:
            return self.expressions.environments.parse_environment(context, options)
        if spec.kind is CommandKind.CLOSER:
            self.expressions.raise_misplaced_closer(context, token)
        if spec.kind is CommandKind.LIMITS:
            raise InvalidSyntaxError.from_token(f"{token.value} must follow an operator", token)

        context.consume()
        if options.debug_mode:
            logger.debug(f"Command {token.value} ({spec.kind.value}) at offset {token.offset}")

        return self._handlers[spec.kind](context, options, token, spec)

    def _parse_unknown(self, context: ParseContext, options: ConversionOptions, token: Token) -> MathMLNode:
        if options.rejects_unknown_commands:
            raise UnknownCommandError.from_token(f"Unknown command: {token.value}", token)

        logger.info(f"Unknown command {token.value} at offset {token.offset}, emitting it as text")
        context.consume()
        return text_element(token.value)

    def require_group(self, context: ParseContext, options: ConversionOptions,
                      command: Token, index: int) -> MathMLNode:
        """Parse the brace group for argument ``index`` of ``command``."""
        self._expect_group(context, command, index)
        return slot(self.expressions.parse_group(context, options))

    def require_raw_group(self, context: ParseContext, command: Token, index: int) -> str:
        """Source text of the brace group for argument ``index`` of ``command``."""
        self._expect_group(context, command, index)
        return self.expressions.read_raw_group(context)

    def _expect_group(self, context: ParseContext, command: Token, index: int):
        token = context.peek()
        if token is None or not token.is_brace('{'):
            raise MissingArgumentError.from_token(
                f"Missing argument {index} for {command.value}",
                command,
                command=command.value,
                argument_index=index
            )

    def read_delimiter(self, context: ParseContext, command: Token) -> Optional[str]:
        """Read the delimiter after \\left, \\right, \\middle or \\big; None for '.'."""
        token = context.consume()
        if token is None:
            raise MissingArgumentError.from_token(
                f"Missing delimiter after {command.value}",
                command,
                command=command.value,
                argument_index=1
            )

        if token.kind is TokenType.SYMBOL:
            if token.value == '.':
                return None
            return _DELIMITER_ALIASES.get(token.value, token.value)

        if token.kind is TokenType.BRACKET:
            return token.value

        if token.kind is TokenType.COMMAND:
            spec = self.registry.get(token.value)
            if spec is not None and spec.kind is CommandKind.FENCE:
                return spec.value

        raise InvalidSyntaxError.from_token(f"Invalid delimiter after {command.value}", token)

    # Zero-argument handlers

    def _parse_identifier(self, context, options, token, spec) -> MathMLNode:
        return identifier(spec.value)

    def _parse_operator(self, context, options, token, spec) -> MathMLNode:
        return operator(spec.value)

    def _parse_fence(self, context, options, token, spec) -> MathMLNode:
        return operator(spec.value, stretchy='false')

    def _parse_large_operator(self, context, options, token, spec) -> MathMLNode:
        return operator(spec.value, largeop='true', movablelimits='true')

    def _parse_integral(self, context, options, token, spec) -> MathMLNode:
        return operator(spec.value, largeop='true')

    def _parse_limit_function(self, context, options, token, spec) -> MathMLNode:
        return operator(spec.value, movablelimits='true')

    def _parse_space(self, context, options, token, spec) -> MathMLNode:
        return element('mspace', attributes={'width': spec.value})

    def _parse_line_break(self, context, options, token, spec) -> MathMLNode:
        return element('mspace', attributes={'linebreak': 'newline'})

    # Argument-taking handlers

    def _parse_sized_space(self, context, options, token, spec) -> MathMLNode:
        width = self.require_raw_group(context, token, 1).strip()
        return element('mspace', attributes={'width': width})

    def _parse_fraction(self, context, options, token, spec) -> MathMLNode:
        numerator = self.require_group(context, options, token, 1)
        denominator = self.require_group(context, options, token, 2)
        fraction = element('mfrac', [numerator, denominator])

        if spec.value:
            return element('mstyle', [fraction], {'displaystyle': spec.value})
        return fraction

    def _parse_binomial(self, context, options, token, spec) -> MathMLNode:
        upper = self.require_group(context, options, token, 1)
        lower = self.require_group(context, options, token, 2)

        return row([
            operator('('),
            element('mfrac', [upper, lower], {'linethickness': '0'}),
            operator(')')
        ])

    def _parse_sqrt(self, context, options, token, spec) -> MathMLNode:
        degree = self.expressions.parse_optional_argument(context, options)
        radicand = self.require_group(context, options, token, 1)

        if degree is None:
            return element('msqrt', [radicand])
        return element('mroot', [radicand, slot(degree)])

    def _parse_root(self, context, options, token, spec) -> MathMLNode:
        degree = self.require_group(context, options, token, 1)

        # plain TeX spelling: \root n \of x
        following = context.peek()
        if following is not None and following.is_command('\\of'):
            context.consume()

        radicand = self.require_group(context, options, token, 2)
        return element('mroot', [radicand, degree])

    def _parse_style(self, context, options, token, spec) -> MathMLNode:
        content = self.require_group(context, options, token, 1)
        return element('mstyle', [content], {'mathvariant': spec.value})

    def _parse_text(self, context, options, token, spec) -> MathMLNode:
        raw = self.require_raw_group(context, token, 1)
        content = self.expressions.normalize_text(raw, options)

        if spec.value == 'normal':
            return text_element(content)
        return text_element(content, mathvariant=spec.value)

    def _parse_operator_name(self, context, options, token, spec) -> MathMLNode:
        name = self.require_raw_group(context, token, 1).strip()
        return identifier(name)

    def _parse_accent(self, context, options, token, spec) -> MathMLNode:
        base = self.require_group(context, options, token, 1)
        stretchy = 'true' if token.value in STRETCHY_ACCENTS else 'false'
        return element('mover', [base, operator(spec.value, stretchy=stretchy)], {'accent': 'true'})

    def _parse_under_accent(self, context, options, token, spec) -> MathMLNode:
        base = self.require_group(context, options, token, 1)
        stretchy = 'true' if token.value in STRETCHY_ACCENTS else 'false'
        return element('munder', [base, operator(spec.value, stretchy=stretchy)], {'accentunder': 'true'})

    def _parse_overset(self, context, options, token, spec) -> MathMLNode:
        top = self.require_group(context, options, token, 1)
        base = self.require_group(context, options, token, 2)
        return element('mover', [base, top])

    def _parse_underset(self, context, options, token, spec) -> MathMLNode:
        bottom = self.require_group(context, options, token, 1)
        base = self.require_group(context, options, token, 2)
        return element('munder', [base, bottom])

    def _parse_enclose(self, context, options, token, spec) -> MathMLNode:
        content = self.require_group(context, options, token, 1)
        return element('menclose', [content], {'notation': spec.value})

    def _parse_phantom(self, context, options, token, spec) -> MathMLNode:
        content = self.require_group(context, options, token, 1)
        return element('mphantom', [content])

    def _parse_pmod(self, context, options, token, spec) -> MathMLNode:
        modulus = self.require_group(context, options, token, 1)
        return row([operator('('), operator('mod'), modulus, operator(')')])

    # Delimiters

    def _parse_left(self, context, options, token, spec) -> MathMLNode:
        opening = self.read_delimiter(context, token)

        context.open_scope(ScopeFrame('left', token.value, token), options.max_nesting_depth)
        content = self.expressions.parse_expression(context, options, stop=_is_right)

        right = context.consume()
        if right is None:
            raise InvalidSyntaxError.from_token("Missing \\right for \\left", token)
        context.close_scope()
        closing = self.read_delimiter(context, right)

        children = []
        if opening is not None:
            children.append(operator(opening, fence='true', stretchy='true'))
        if not is_empty(content):
            children.append(content)
        if closing is not None:
            children.append(operator(closing, fence='true', stretchy='true'))

        return collapse(children)

    def _parse_middle(self, context, options, token, spec) -> MathMLNode:
        delimiter = self.read_delimiter(context, token)
        return operator(delimiter or '', stretchy='true')

    def _parse_big(self, context, options, token, spec) -> MathMLNode:
        delimiter = self.read_delimiter(context, token)
        return operator(delimiter or '', minsize=spec.value, maxsize=spec.value)


__all__ = ['CommandKind', 'CommandSpec', 'CommandParser', 'build_command_registry']
