import logging
import threading
from pathlib import Path
from typing import Optional, Union

from .config import ConversionOptions
from .errors import LaTeXError
from .latex_parser import LaTeXParser
from .mathml_generator import MathMLGenerator
from .models import ConversionResult, ParseResult, ValidationResult
from .nodes import MathMLNode, element, text_element
from .validator import ASTValidator, InputValidator, validate_mathml


logger = logging.getLogger(__name__)


class LaTeXConverter:
    """Convert LaTeX to MathML, folding every failure into a result object."""

    def __init__(self, options: Optional[ConversionOptions] = None,
                 symbol_config_path: Optional[Union[str, Path]] = None):
        self.options = options or ConversionOptions()
        self.parser = LaTeXParser(symbol_config_path)
        self.ast_validator = ASTValidator()
        self.generator = MathMLGenerator(self.ast_validator)

    def _resolve_options(self, options: Optional[ConversionOptions], **overrides) -> ConversionOptions:
        return (options or self.options).with_overrides(**overrides)

    def convert(self, latex: str, options: Optional[ConversionOptions] = None,
                **overrides) -> ConversionResult:
        """Convert LaTeX to MathML.

        Args:
            latex: LaTeX math source
            options: options for this call; the converter's defaults otherwise
            **overrides: individual option changes, e.g. ``display_mode=True``

        Returns:
            ConversionResult; on failure ``errors`` is non-empty and ``mathml``
            holds an ``merror`` fallback document
        """
        options = self._resolve_options(options, **overrides)

        input_check = self.validate_input(latex, options)
        if not input_check.is_valid:
            logger.warning(f"Rejected LaTeX input: {input_check.errors}")
            return ConversionResult(
                mathml=self._fallback_mathml(latex, options.display_mode),
                errors=list(input_check.errors)
            )

        try:
            ast = self.parser.parse(latex, options)

        except LaTeXError as e:
            logger.warning(f"Failed to parse LaTeX: {e}")
            return ConversionResult(
                mathml=self._fallback_mathml(latex, options.display_mode),
                errors=[str(e)],
                error_details=[e.to_dict()]
            )

        except Exception as e:
            logger.error(f"Failed to convert LaTeX to MathML: {e}")
            return ConversionResult(
                mathml=self._fallback_mathml(latex, options.display_mode),
                errors=[f"Internal error: {e}"]
            )

        result = self.generate(ast, options.display_mode)

        if result.mathml:
            is_valid, problems = validate_mathml(result.mathml)
            if not is_valid:
                logger.debug(f"Generated MathML has problems: {problems}")
                result.warnings.extend(problems)

        return result

    def convert_display(self, latex: str, **overrides) -> ConversionResult:
        return self.convert(latex, display_mode=True, **overrides)

    def convert_inline(self, latex: str, **overrides) -> ConversionResult:
        return self.convert(latex, display_mode=False, **overrides)

    def parse(self, latex: str, options: Optional[ConversionOptions] = None) -> MathMLNode:
        """Parse to an AST, raising LaTeXError on failure."""
        return self.parser.parse(latex, options or self.options)

    def try_parse(self, latex: str, options: Optional[ConversionOptions] = None) -> ParseResult:
        """Parse to an AST, returning the failure instead of raising it."""
        try:
            return ParseResult(node=self.parse(latex, options))
        except LaTeXError as e:
            return ParseResult(error=e)

    def generate(self, ast: MathMLNode, display_mode: bool = False) -> ConversionResult:
        return self.generator.generate(ast, display_mode)

    def validate_input(self, latex: str, options: Optional[ConversionOptions] = None) -> ValidationResult:
        limit = (options or self.options).max_input_length
        return InputValidator(limit).validate_input(latex)

    def validate(self, latex: str, options: Optional[ConversionOptions] = None) -> ValidationResult:
        """Run input checks, a strict parse and AST validation together."""
        options = self._resolve_options(options, strict_mode=True)

        input_check = self.validate_input(latex, options)
        errors = list(input_check.errors)

        if isinstance(latex, str):
            outcome = self.try_parse(latex, options)
            if outcome.ok:
                errors.extend(self.ast_validator.validate(outcome.node).errors)
            else:
                errors.append(str(outcome.error))

        return ValidationResult.from_errors(errors)

    def _fallback_mathml(self, latex, display_mode: bool) -> str:
        """Generate fallback MathML for failed conversions."""
        source = latex if isinstance(latex, str) else repr(latex)
        if len(source) > 100:
            source = source[:100] + '...'

        # drop characters that cannot appear in XML text
        source = ''.join(
            char for char in source
            if char in '\t\n\r' or (ord(char) >= 0x20 and not 0xD800 <= ord(char) <= 0xDFFF)
        )

        merror = element('merror', [text_element(f"Failed to convert: {source}")])
        return self.generator.serialize(self.generator.build_document(merror), display_mode)


_default_converter = None
_default_converter_lock = threading.Lock()


def get_default_converter() -> LaTeXConverter:
    global _default_converter
    if _default_converter is None:
        with _default_converter_lock:
            if _default_converter is None:
                _default_converter = LaTeXConverter()
    return _default_converter


def parse(latex: str, options: Optional[ConversionOptions] = None) -> MathMLNode:
    return get_default_converter().parse(latex, options)


def generate(ast: MathMLNode, display_mode: bool = False) -> ConversionResult:
    return get_default_converter().generate(ast, display_mode)


def validate_input(latex: str) -> ValidationResult:
    return get_default_converter().validate_input(latex)


def convert(latex: str, options: Optional[ConversionOptions] = None, **overrides) -> ConversionResult:
    return get_default_converter().convert(latex, options, **overrides)


def convert_display(latex: str, **overrides) -> ConversionResult:
    return get_default_converter().convert_display(latex, **overrides)


def convert_inline(latex: str, **overrides) -> ConversionResult:
    return get_default_converter().convert_inline(latex, **overrides)


def latex_to_mathml(latex: str, display: bool = False,
                    config_path: Optional[Union[str, Path]] = None) -> str:
    """Convenience function to convert LaTeX to MathML."""
    converter = LaTeXConverter(symbol_config_path=config_path) if config_path else get_default_converter()
    return converter.convert(latex, display_mode=display).mathml


__all__ = [
    'LaTeXConverter',
    'get_default_converter',
    'parse',
    'generate',
    'validate_input',
    'convert',
    'convert_display',
    'convert_inline',
    'latex_to_mathml',
]
