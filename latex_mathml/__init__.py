"""
LaTeX to MathML Converter

Tokenizes and parses LaTeX math markup into a MathML element tree,
validates its structure and serializes it to MathML text.
"""

__version__ = "0.1.0"
__author__ = "LaTeX MathML Team"

# Options and errors
from .config import ConversionOptions, load_options
from .errors import (
    LaTeXError,
    UnknownCommandError,
    UnknownEnvironmentError,
    UnmatchedBraceError,
    UnmatchedBracketError,
    UnmatchedEnvironmentError,
    MissingArgumentError,
    InvalidSyntaxError,
    UnexpectedTokenError
)

# Data model
from .models import (
    TokenType,
    Token,
    ParseContext,
    ConversionResult,
    ValidationResult,
    ParseResult
)
from .nodes import TextNode, ElementNode, MathMLNode

# Core components
from .lexer import LaTeXLexer, tokenize
from .symbols import SymbolTable
from .latex_parser import LaTeXParser
from .validator import ASTValidator, InputValidator, validate_mathml
from .mathml_generator import MathMLGenerator

# Entry points
from .mathml_converter import (
    LaTeXConverter,
    parse,
    generate,
    validate_input,
    convert,
    convert_display,
    convert_inline,
    latex_to_mathml
)

__all__ = [
    # Version
    "__version__",

    # Options
    "ConversionOptions",
    "load_options",

    # Errors
    "LaTeXError",
    "UnknownCommandError",
    "UnknownEnvironmentError",
    "UnmatchedBraceError",
    "UnmatchedBracketError",
    "UnmatchedEnvironmentError",
    "MissingArgumentError",
    "InvalidSyntaxError",
    "UnexpectedTokenError",

    # Models
    "TokenType",
    "Token",
    "ParseContext",
    "ConversionResult",
    "ValidationResult",
    "ParseResult",
    "TextNode",
    "ElementNode",
    "MathMLNode",

    # Core components
    "LaTeXLexer",
    "tokenize",
    "SymbolTable",
    "LaTeXParser",
    "ASTValidator",
    "InputValidator",
    "validate_mathml",
    "MathMLGenerator",

    # Entry points
    "LaTeXConverter",
    "parse",
    "generate",
    "validate_input",
    "convert",
    "convert_display",
    "convert_inline",
    "latex_to_mathml"
]


# Convenience function
def create_converter(**kwargs):
    """Create a converter configured with the given options."""
    options = ConversionOptions(**kwargs)
    return LaTeXConverter(options)
