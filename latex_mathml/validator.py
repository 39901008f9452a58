"""
Structural validation of the AST, the LaTeX input and generated MathML
"""

import regex
import logging
from functools import lru_cache
from typing import Any, Dict, List, Tuple

import lxml.etree as ET

from .models import ValidationResult
from .nodes import ElementNode, TextNode


logger = logging.getLogger(__name__)


MATHML_NAMESPACE = 'http://www.w3.org/1998/Math/MathML'

# constructs with an exact number of children
FIXED_ARITY = {
    'mfrac': 2, 'msub': 2, 'msup': 2, 'munder': 2, 'mover': 2, 'mroot': 2,
    'msubsup': 3, 'munderover': 3
}

# tables and table rows must not be empty
MIN_ARITY = {'mtable': 1, 'mtr': 1}

TOKEN_ELEMENTS = frozenset({'mi', 'mn', 'mo', 'mtext', 'ms'})

VALID_ELEMENTS = frozenset({
    'math', 'mrow', 'mi', 'mn', 'mo', 'mtext', 'mspace',
    'ms', 'mglyph', 'msub', 'msup', 'msubsup', 'munder',
    'mover', 'munderover', 'mmultiscripts', 'mtable', 'mtr',
    'mtd', 'mlabeledtr', 'mstack', 'mlongdiv', 'msgroup',
    'msrow', 'mscarries', 'mscarry', 'msline', 'mfrac',
    'msqrt', 'mroot', 'mstyle', 'merror', 'mpadded',
    'mphantom', 'mfenced', 'menclose', 'maction',
    'semantics', 'annotation', 'annotation-xml', 'mprescripts',
    'none', 'maligngroup', 'malignmark'
})

_XML_NAME = regex.compile(r'^[A-Za-z_][A-Za-z0-9_.:-]*$')


class ASTValidator:
    """Check node shapes and per-element arity, collecting every violation."""

    def validate(self, node: Any) -> ValidationResult:
        """Validate a tree; never raises."""
        errors: List[str] = []
        self._validate_node(node, '', errors)

        if errors:
            logger.debug(f"AST validation found {len(errors)} problem(s)")
        return ValidationResult.from_errors(errors)

    def _validate_node(self, node: Any, parent_path: str, errors: List[str]):
        if isinstance(node, TextNode):
            path = f"{parent_path}/#text" if parent_path else '#text'
            extra = sorted(set(vars(node)) - {'content'})
            if extra:
                errors.append(f"{path}: text node must not carry {', '.join(extra)}")
            if not isinstance(node.content, str):
                errors.append(f"{path}: text content must be a string, got {type(node.content).__name__}")
            return

        if not isinstance(node, ElementNode):
            path = parent_path or '<root>'
            errors.append(f"{path}: malformed node of type {type(node).__name__}")
            return

        name = node.name
        label = name if isinstance(name, str) and name else '?'
        path = f"{parent_path}/{label}" if parent_path else label

        if not isinstance(name, str) or not name:
            errors.append(f"{path}: element name must be a non-empty string")
        elif not _XML_NAME.match(name):
            errors.append(f"{path}: invalid element name {name!r}")

        self._validate_attributes(node.attributes, path, errors)

        children = node.children
        if not isinstance(children, list):
            errors.append(f"{path}: children must be a list, got {type(children).__name__}")
            return

        if isinstance(name, str):
            expected = FIXED_ARITY.get(name)
            if expected is not None and len(children) != expected:
                errors.append(f"{path}: <{name}> requires {expected} children, found {len(children)}")

            minimum = MIN_ARITY.get(name)
            if minimum is not None and len(children) < minimum:
                errors.append(f"{path}: <{name}> requires at least {minimum} child, found {len(children)}")

        for index, child in enumerate(children):
            self._validate_node(child, f"{path}[{index}]", errors)

    @staticmethod
    def _validate_attributes(attributes: Any, path: str, errors: List[str]):
        if not isinstance(attributes, dict):
            errors.append(f"{path}: attributes must be a mapping, got {type(attributes).__name__}")
            return

        for key, value in attributes.items():
            if not isinstance(key, str) or not _XML_NAME.match(key):
                errors.append(f"{path}: invalid attribute name {key!r}")
            if not isinstance(value, str):
                errors.append(f"{path}: attribute {key!r} must be a string, got {type(value).__name__}")


class InputValidator:
    """Cheap pre-parse checks on raw LaTeX, reporting all problems at once."""

    DELIMITER_PAIRS = (
        ('{', '}', 'brace'),
        ('[', ']', 'bracket'),
        ('(', ')', 'parenthesis'),
    )

    ENVIRONMENT_PATTERN = regex.compile(r'\\(begin|end)\s*\{([^{}]*)\}')

    # \left[ ... \right) need not pair up by kind
    SIZED_DELIMITER_PATTERN = regex.compile(r'\\(?:left|right|middle|[bB]igg?[lrm]?)\s*[()\[\]]')

    def __init__(self, max_input_length: int = 10000):
        self.max_input_length = max_input_length
        self._openers = {open_char: (close_char, kind) for open_char, close_char, kind in self.DELIMITER_PAIRS}
        self._closers = {close_char: (open_char, kind) for open_char, close_char, kind in self.DELIMITER_PAIRS}

    def validate_input(self, latex: Any) -> ValidationResult:
        if not isinstance(latex, str):
            return ValidationResult.from_errors([f"Input must be a string, got {type(latex).__name__}"])

        errors: List[str] = []

        if len(latex) > self.max_input_length:
            errors.append(f"Input is too long: {len(latex)} > {self.max_input_length} characters")

        null_offset = latex.find('\x00')
        if null_offset >= 0:
            errors.append(f"Input contains a null byte at offset {null_offset}")

        try:
            latex.encode('utf-8')
        except UnicodeEncodeError as e:
            errors.append(f"Input is not valid text: {e.reason} at offset {e.start}")

        errors.extend(self._check_delimiters(latex))
        errors.extend(self._check_environments(latex))

        return ValidationResult.from_errors(errors)

    def _check_delimiters(self, latex: str) -> List[str]:
        errors = []
        stacks: Dict[str, List[int]] = {kind: [] for _, _, kind in self.DELIMITER_PAIRS}

        index = 0
        while index < len(latex):
            char = latex[index]

            if char == '\\':
                match = self.SIZED_DELIMITER_PATTERN.match(latex, index)
                # otherwise an escaped character such as \{ or \\
                index = match.end() if match else index + 2
                continue

            if char in self._openers:
                stacks[self._openers[char][1]].append(index)
            elif char in self._closers:
                kind = self._closers[char][1]
                if stacks[kind]:
                    stacks[kind].pop()
                else:
                    errors.append(f"Unmatched closing {kind} '{char}' at offset {index}")

            index += 1

        for open_char, _, kind in self.DELIMITER_PAIRS:
            for offset in stacks[kind]:
                errors.append(f"Unmatched opening {kind} '{open_char}' at offset {offset}")

        return errors

    def _check_environments(self, latex: str) -> List[str]:
        errors = []
        open_environments: List[Tuple[str, int]] = []

        for match in self.ENVIRONMENT_PATTERN.finditer(latex):
            command, name = match.group(1), match.group(2).strip()
            offset = match.start()

            if command == 'begin':
                open_environments.append((name, offset))
                continue

            if not open_environments:
                errors.append(f"\\end{{{name}}} at offset {offset} has no matching \\begin")
                continue

            open_name, open_offset = open_environments.pop()
            if open_name != name:
                errors.append(
                    f"\\end{{{name}}} at offset {offset} does not match "
                    f"\\begin{{{open_name}}} at offset {open_offset}"
                )

        for name, offset in open_environments:
            errors.append(f"\\begin{{{name}}} at offset {offset} is never closed")

        return errors


@lru_cache(maxsize=256)
def validate_mathml(mathml: str) -> Tuple[bool, Tuple[str, ...]]:
    """Validate MathML string using lxml."""
    errors: List[str] = []

    try:
        parser = ET.XMLParser(recover=False)
        root = ET.fromstring(mathml.encode('utf-8'), parser)

        if ET.QName(root).localname != 'math':
            errors.append("Root element must be <math>")

        if ET.QName(root).namespace != MATHML_NAMESPACE:
            errors.append("Missing or incorrect MathML namespace")

        if root.get('display') not in ('block', 'inline'):
            errors.append("Root display attribute must be 'block' or 'inline'")

        _validate_element(root, errors)

    except ET.XMLSyntaxError as e:
        errors.append(f"XML syntax error: {e}")

    return len(errors) == 0, tuple(errors)


def _validate_element(node: ET.Element, errors: List[str]):
    """Recursively validate MathML element structure."""
    tag = ET.QName(node).localname

    if tag not in VALID_ELEMENTS:
        errors.append(f"Invalid MathML element: <{tag}>")

    if tag in TOKEN_ELEMENTS and len(node) > 0:
        errors.append(f"Element <{tag}> should not have child elements")

    if tag in FIXED_ARITY:
        expected = FIXED_ARITY[tag]
        actual = len(node)
        if actual != expected:
            errors.append(f"Element <{tag}> requires {expected} children, found {actual}")

    for child in node:
        _validate_element(child, errors)


def validate_ast(node: Any) -> ValidationResult:
    return ASTValidator().validate(node)


__all__ = [
    'ASTValidator',
    'InputValidator',
    'validate_mathml',
    'validate_ast',
    'FIXED_ARITY',
    'MIN_ARITY',
    'MATHML_NAMESPACE',
]
