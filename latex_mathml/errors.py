"""
Error kinds raised while parsing LaTeX
"""

from typing import Any, Dict, Optional


class LaTeXError(Exception):
    """Base class for all parse failures."""
    
    kind = "ConversionError"
    
    def __init__(self, message: str, text: str = '', offset: Optional[int] = None,
                 line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.text = text
        self.offset = offset
        self.line = line
        self.column = column
        
    @classmethod
    def from_token(cls, message: str, token, **kwargs) -> 'LaTeXError':
        """Create an error located at a token."""
        if token is None:
            return cls(message, **kwargs)
        return cls(
            message,
            text=token.value,
            offset=token.offset,
            line=token.line,
            column=token.column,
            **kwargs
        )
        
    @property
    def location(self) -> str:
        if self.offset is None:
            return ''
        if self.line is not None and self.column is not None:
            return f"offset {self.offset} (line {self.line}, column {self.column})"
        return f"offset {self.offset}"
        
    def __str__(self) -> str:
        location = self.location
        if location:
            return f"{self.message} at {location}"
        return self.message
        
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'type': self.kind,
            'message': self.message,
            'text': self.text,
            'position': self.offset,
            'line': self.line,
            'column': self.column
        }


class UnknownCommandError(LaTeXError):
    kind = "UnknownCommand"


class UnknownEnvironmentError(LaTeXError):
    kind = "UnknownEnvironment"


class UnmatchedBraceError(LaTeXError):
    kind = "UnmatchedBrace"


class UnmatchedBracketError(LaTeXError):
    kind = "UnmatchedBracket"


class UnmatchedEnvironmentError(LaTeXError):
    kind = "UnmatchedEnvironment"


class MissingArgumentError(LaTeXError):
    kind = "MissingArgument"
    
    def __init__(self, message: str, command: str = '', argument_index: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.command = command
        self.argument_index = argument_index
        
    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['command'] = self.command
        data['argument_index'] = self.argument_index
        return data


class InvalidSyntaxError(LaTeXError):
    kind = "InvalidSyntax"


class UnexpectedTokenError(LaTeXError):
    kind = "UnexpectedToken"


__all__ = [
    'LaTeXError',
    'UnknownCommandError',
    'UnknownEnvironmentError',
    'UnmatchedBraceError',
    'UnmatchedBracketError',
    'UnmatchedEnvironmentError',
    'MissingArgumentError',
    'InvalidSyntaxError',
    'UnexpectedTokenError',
]
