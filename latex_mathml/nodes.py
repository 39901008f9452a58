"""
AST node types shared by every parser stage
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union


@dataclass
class TextNode:
    content: str = ''


@dataclass
class ElementNode:
    name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List['MathMLNode'] = field(default_factory=list)
    
    def find_all(self, name: str) -> List['ElementNode']:
        """Collect descendant elements with the given name, in document order."""
        found = []
        for child in self.children:
            if isinstance(child, ElementNode):
                if child.name == name:
                    found.append(child)
                found.extend(child.find_all(name))
        return found
        
    @property
    def text(self) -> str:
        """Concatenated text content of this subtree."""
        parts = []
        for child in self.children:
            if isinstance(child, TextNode):
                parts.append(child.content)
            elif isinstance(child, ElementNode):
                parts.append(child.text)
        return ''.join(parts)


MathMLNode = Union[TextNode, ElementNode]


def text(content: str = '') -> TextNode:
    return TextNode(content)


def element(name: str, children: Optional[List[MathMLNode]] = None,
            attributes: Optional[Dict[str, str]] = None) -> ElementNode:
    return ElementNode(name, dict(attributes or {}), list(children or []))


def token_element(name: str, content: str, attributes: Optional[Dict[str, str]] = None) -> ElementNode:
    """Leaf element (mi, mn, mo, mtext) wrapping a single text node."""
    return ElementNode(name, dict(attributes or {}), [TextNode(content)])


def identifier(content: str, **attributes) -> ElementNode:
    return token_element('mi', content, attributes)


def operator(content: str, **attributes) -> ElementNode:
    return token_element('mo', content, attributes)


def number(content: str) -> ElementNode:
    return token_element('mn', content)


def text_element(content: str, **attributes) -> ElementNode:
    return token_element('mtext', content, attributes)


def row(children: List[MathMLNode], attributes: Optional[Dict[str, str]] = None) -> ElementNode:
    return element('mrow', children, attributes)


def collapse(children: List[MathMLNode]) -> MathMLNode:
    """Collapse parsed siblings: none gives empty text, one is unwrapped, more become a row."""
    if not children:
        return TextNode('')
    if len(children) == 1:
        return children[0]
    return ElementNode('mrow', {}, list(children))


def is_empty(node: MathMLNode) -> bool:
    return isinstance(node, TextNode) and node.content == ''


def slot(node: MathMLNode) -> MathMLNode:
    """Content for one child position of an element; empty content becomes an empty mrow."""
    if is_empty(node):
        return ElementNode('mrow', {}, [])
    return node


__all__ = [
    'TextNode',
    'ElementNode',
    'MathMLNode',
    'text',
    'element',
    'token_element',
    'identifier',
    'operator',
    'number',
    'text_element',
    'row',
    'collapse',
    'is_empty',
    'slot',
]
