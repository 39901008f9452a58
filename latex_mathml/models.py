"""
Data models for the LaTeX to MathML converter
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Tuple
from enum import Enum

from .errors import LaTeXError, InvalidSyntaxError


class TokenType(Enum):
    """Kinds of lexer tokens."""
    COMMAND = "command"
    SYMBOL = "symbol"
    TEXT = "text"
    NUMBER = "number"
    WHITESPACE = "whitespace"
    BRACE = "brace"
    BRACKET = "bracket"


@dataclass(frozen=True)
class Token:
    """A single lexer token with its 0-based source offset."""
    kind: TokenType
    value: str
    offset: int
    line: int = 1
    column: int = 1
    
    def is_command(self, name: Optional[str] = None) -> bool:
        return self.kind is TokenType.COMMAND and (name is None or self.value == name)
        
    def is_symbol(self, value: Optional[str] = None) -> bool:
        return self.kind is TokenType.SYMBOL and (value is None or self.value == value)
        
    def is_brace(self, value: str) -> bool:
        return self.kind is TokenType.BRACE and self.value == value
        
    def is_bracket(self, value: str) -> bool:
        return self.kind is TokenType.BRACKET and self.value == value


@dataclass(frozen=True)
class ScopeFrame:
    """An open group, bracket, \\left or environment."""
    kind: str  # brace, bracket, left, environment
    name: str
    token: Token


@dataclass
class ParseContext:
    """Cursor over an immutable token sequence, owned by a single parse."""
    tokens: Tuple[Token, ...]
    source: str = ''
    position: int = 0
    scope: List[ScopeFrame] = field(default_factory=list)
    environment: Optional[str] = None
    
    def peek(self, offset: int = 0) -> Optional[Token]:
        index = self.position + offset
        if 0 <= index < len(self.tokens):
            return self.tokens[index]
        return None
        
    def consume(self) -> Optional[Token]:
        token = self.peek()
        if token is not None:
            self.position += 1
        return token
        
    def at_end(self) -> bool:
        return self.position >= len(self.tokens)
        
    @property
    def depth(self) -> int:
        return len(self.scope)
        
    def open_scope(self, frame: ScopeFrame, max_depth: int):
        """Push a scope frame, enforcing the nesting limit."""
        if len(self.scope) >= max_depth:
            raise InvalidSyntaxError.from_token(
                f"Maximum nesting depth of {max_depth} exceeded",
                frame.token
            )
        self.scope.append(frame)
        
    def close_scope(self) -> ScopeFrame:
        return self.scope.pop()
        
    def innermost(self, kind: Optional[str] = None) -> Optional[ScopeFrame]:
        """Innermost open scope, optionally restricted to one kind."""
        for frame in reversed(self.scope):
            if kind is None or frame.kind == kind:
                return frame
        return None


@dataclass
class ValidationResult:
    """Outcome of a validation pass."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    
    @classmethod
    def from_errors(cls, errors: List[str], warnings: Optional[List[str]] = None) -> 'ValidationResult':
        return cls(is_valid=not errors, errors=list(errors), warnings=list(warnings or []))
        
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'is_valid': self.is_valid,
            'errors': self.errors,
            'warnings': self.warnings
        }


@dataclass
class ConversionResult:
    """Generated MathML together with the messages collected on the way."""
    mathml: str
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error_details: List[Dict[str, Any]] = field(default_factory=list)
    
    @property
    def is_successful(self) -> bool:
        return not self.errors
        
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'mathml': self.mathml,
            'errors': self.errors,
            'warnings': self.warnings,
            'error_details': self.error_details,
            'success': self.is_successful
        }


@dataclass
class ParseResult:
    """Either a parsed tree or the error that stopped the parse."""
    node: Optional[Any] = None
    error: Optional[LaTeXError] = None
    
    @property
    def ok(self) -> bool:
        return self.error is None
        
    def unwrap(self):
        """Return the node or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.node


__all__ = [
    'TokenType',
    'Token',
    'ScopeFrame',
    'ParseContext',
    'ValidationResult',
    'ConversionResult',
    'ParseResult',
]
