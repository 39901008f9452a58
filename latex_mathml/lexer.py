import regex
import logging
from typing import List

from .models import Token, TokenType


logger = logging.getLogger(__name__)


class LaTeXLexer:
    """Single-pass tokenizer for LaTeX math markup."""
    
    BRACES = frozenset('{}')
    BRACKETS = frozenset('[]')
    
    def __init__(self):
        # \name, a control symbol such as \\ or \{, or control space
        self.command_pattern = regex.compile(r'\\(?:[a-zA-Z]+|[^a-zA-Z\s]|[ ])?')
        # digits with at most one decimal point, no exponent
        self.number_pattern = regex.compile(r'[0-9]+(?:\.[0-9]*)?')
        
    def tokenize(self, latex: str) -> List[Token]:
        """Tokenize LaTeX string into list of tokens.
        
        Args:
            latex: LaTeX source
            
        Returns:
            Tokens in source order; whitespace is skipped
        """
        tokens = []
        pos = 0
        line = 1
        column = 1
        
        while pos < len(latex):
            char = latex[pos]
            
            if char.isspace():
                end = pos
                while end < len(latex) and latex[end].isspace():
                    end += 1

            elif char == '\\':
                match = self.command_pattern.match(latex, pos)
                end = match.end()
                tokens.append(Token(TokenType.COMMAND, latex[pos:end], pos, line, column))
                
            elif char in self.BRACES:
                end = pos + 1
                tokens.append(Token(TokenType.BRACE, char, pos, line, column))
                
            elif char in self.BRACKETS:
                end = pos + 1
                tokens.append(Token(TokenType.BRACKET, char, pos, line, column))
                
            elif '0' <= char <= '9':
                match = self.number_pattern.match(latex, pos)
                end = match.end()
                tokens.append(Token(TokenType.NUMBER, match.group(), pos, line, column))
                
            else:
                end = pos + 1
                tokens.append(Token(TokenType.SYMBOL, char, pos, line, column))
                
            consumed = latex[pos:end]
            newlines = consumed.count('\n')
            if newlines:
                line += newlines
                column = len(consumed) - consumed.rfind('\n')
            else:
                column += len(consumed)
            pos = end
            
        logger.debug(f"Tokenized {len(latex)} characters into {len(tokens)} tokens")
        return tokens


_default_lexer = LaTeXLexer()


def tokenize(latex: str) -> List[Token]:
    """Tokenize with a shared lexer instance."""
    return _default_lexer.tokenize(latex)


__all__ = ['LaTeXLexer', 'tokenize']
