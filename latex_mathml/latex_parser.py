import logging
from pathlib import Path
from typing import List, Optional, Union

from .config import ConversionOptions, DEFAULT_OPTIONS
from .commands import build_command_registry
from .environments import build_environment_registry
from .errors import UnexpectedTokenError
from .expressions import ExpressionParser, StopCondition
from .lexer import LaTeXLexer
from .models import ParseContext, Token
from .nodes import MathMLNode
from .symbols import SymbolTable


logger = logging.getLogger(__name__)


class LaTeXParser:
    """Tokenize and parse LaTeX math into an AST.

    Registries are built once here and shared read-only by every parse;
    each call to ``parse`` owns a fresh ParseContext.
    """

    def __init__(self, symbol_config_path: Optional[Union[str, Path]] = None):
        self.lexer = LaTeXLexer()
        self.symbols = SymbolTable(symbol_config_path)
        self.command_registry = build_command_registry(self.symbols)
        self.environment_registry = build_environment_registry()
        self.expressions = ExpressionParser(
            self.command_registry,
            self.environment_registry,
            self.symbols
        )

    def tokenize(self, latex: str) -> List[Token]:
        return self.lexer.tokenize(latex)

    def create_context(self, latex: str) -> ParseContext:
        """Fresh parse state over the tokens of ``latex``."""
        return ParseContext(tokens=tuple(self.lexer.tokenize(latex)), source=latex)

    def parse(self, latex: str, options: Optional[ConversionOptions] = None) -> MathMLNode:
        """Parse LaTeX string into an AST.

        Args:
            latex: LaTeX math source
            options: conversion options; defaults apply when omitted

        Returns:
            The collapsed expression node

        Raises:
            LaTeXError: on the first structural or strict-mode failure
        """
        if not isinstance(latex, str):
            raise TypeError(f"LaTeX input must be a string, got {type(latex).__name__}")

        options = options or DEFAULT_OPTIONS
        context = self.create_context(latex)

        if options.debug_mode:
            logger.debug(f"Parsing {len(context.tokens)} tokens: {latex[:80]!r}")

        node = self.expressions.parse_expression(context, options)

        if not context.at_end():
            token = context.peek()
            raise UnexpectedTokenError.from_token(f"Unexpected token {token.value!r}", token)

        return node

    def parse_expression(self, context: ParseContext, options: Optional[ConversionOptions] = None,
                         stop: Optional[StopCondition] = None) -> MathMLNode:
        return self.expressions.parse_expression(context, options or DEFAULT_OPTIONS, stop)

    def parse_command(self, context: ParseContext, options: Optional[ConversionOptions] = None) -> MathMLNode:
        return self.expressions.commands.parse_command(context, options or DEFAULT_OPTIONS)

    def parse_environment(self, context: ParseContext, options: Optional[ConversionOptions] = None) -> MathMLNode:
        return self.expressions.environments.parse_environment(context, options or DEFAULT_OPTIONS)


__all__ = ['LaTeXParser']
