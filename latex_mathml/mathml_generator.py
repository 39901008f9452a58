import logging
from typing import Any, List, Optional
from xml.sax.saxutils import escape

from .models import ConversionResult
from .nodes import ElementNode, MathMLNode, TextNode
from .validator import ASTValidator, MATHML_NAMESPACE


logger = logging.getLogger(__name__)


# escape() handles '&' first, then '<' and '>', then these
_QUOTE_ENTITIES = {'"': '&quot;', "'": '&apos;'}

VALIDATION_WARNING = "Node validation failed, but MathML generation was attempted anyway"


def escape_text(value: str) -> str:
    return escape(value, _QUOTE_ENTITIES)


class MathMLGenerator:
    """Serialize an AST to MathML text without modifying it."""

    def __init__(self, validator: Optional[ASTValidator] = None):
        self.validator = validator or ASTValidator()

    def serialize(self, node: MathMLNode, display_mode: bool = False) -> str:
        """Serialize a node; a root named ``math`` gets generator-controlled xmlns/display."""
        parts: List[str] = []
        self._write(node, parts, display_mode, is_root=True)
        return ''.join(parts)

    def build_document(self, node: MathMLNode) -> ElementNode:
        """Wrap an expression in a ``math`` root unless it already is one."""
        if isinstance(node, ElementNode) and node.name == 'math':
            return node
        return ElementNode('math', {}, [node])

    def generate(self, node: MathMLNode, display_mode: bool = False) -> ConversionResult:
        """Validate then serialize a full MathML document.

        Validation problems are reported as errors but do not stop
        serialization; only a node that cannot be written at all yields
        empty output.
        """
        errors: List[str] = []
        warnings: List[str] = []

        validation = self.validator.validate(node)
        if not validation.is_valid:
            errors.extend(validation.errors)
            warnings.append(VALIDATION_WARNING)
            logger.warning(f"Generating MathML from an invalid tree: {validation.errors}")

        try:
            mathml = self.serialize(self.build_document(node), display_mode)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize MathML: {e}")
            errors.append(f"Serialization failed: {e}")
            mathml = ''

        return ConversionResult(mathml=mathml, errors=errors, warnings=warnings)

    def _write(self, node: Any, parts: List[str], display_mode: bool, is_root: bool = False):
        if isinstance(node, TextNode):
            if not isinstance(node.content, str):
                raise TypeError(f"Text content must be a string, got {type(node.content).__name__}")
            parts.append(escape_text(node.content))
            return

        if not isinstance(node, ElementNode):
            raise TypeError(f"Cannot serialize node of type {type(node).__name__}")

        if not isinstance(node.name, str):
            raise TypeError(f"Element name must be a string, got {type(node.name).__name__}")
        if not node.name:
            raise ValueError("Cannot serialize an element without a name")

        attributes = node.attributes
        if is_root and node.name == 'math':
            attributes = self._root_attributes(attributes, display_mode)

        parts.append(f"<{node.name}")
        for key, value in attributes.items():
            parts.append(f' {key}="{escape_text(str(value))}"')
        parts.append('>')

        for child in node.children:
            self._write(child, parts, display_mode)

        parts.append(f"</{node.name}>")

    @staticmethod
    def _root_attributes(attributes, display_mode: bool):
        root = {
            'xmlns': MATHML_NAMESPACE,
            'display': 'block' if display_mode else 'inline',
        }
        for key, value in attributes.items():
            if key not in root:
                root[key] = value
        return root


__all__ = ['MathMLGenerator', 'escape_text', 'MATHML_NAMESPACE', 'VALIDATION_WARNING']
