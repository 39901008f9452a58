"""
Configuration classes for the LaTeX to MathML converter
"""

import json
import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Union
from pathlib import Path

import yaml


logger = logging.getLogger(__name__)


# camelCase spellings accepted in option files
_OPTION_ALIASES = {
    'displayMode': 'display_mode',
    'strictMode': 'strict_mode',
    'allowUnknownCommands': 'allow_unknown_commands',
    'preserveWhitespace': 'preserve_whitespace',
    'debugMode': 'debug_mode',
    'maxNestingDepth': 'max_nesting_depth',
    'maxInputLength': 'max_input_length',
}


@dataclass(frozen=True)
class ConversionOptions:
    """Options recognized by the parser, generator and converter."""
    # Output
    display_mode: bool = False
    
    # Unknown command/environment handling
    strict_mode: bool = False
    allow_unknown_commands: bool = False
    
    # Text mode
    preserve_whitespace: bool = False
    
    # Diagnostics
    debug_mode: bool = False
    
    # Limits
    max_nesting_depth: int = 100
    max_input_length: int = 10000
    
    def __post_init__(self):
        """Validate limits."""
        if self.max_nesting_depth < 1:
            raise ValueError(f"max_nesting_depth must be positive, got {self.max_nesting_depth}")
        if self.max_input_length < 1:
            raise ValueError(f"max_input_length must be positive, got {self.max_input_length}")
            
    @property
    def rejects_unknown_commands(self) -> bool:
        return self.strict_mode and not self.allow_unknown_commands
        
    def with_overrides(self, **changes) -> 'ConversionOptions':
        """Return a copy with some options changed."""
        if not changes:
            return self
        return replace(self, **self._normalize(changes))
        
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConversionOptions':
        """Build options from a mapping of snake_case or camelCase keys."""
        return cls(**cls._normalize(data or {}))
        
    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'ConversionOptions':
        """Load options from a YAML or JSON file."""
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix in ['.yaml', '.yml']:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
                
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Options file {path} must contain a mapping")
            
        logger.info(f"Loaded conversion options from {path}")
        return cls.from_dict(data)
        
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}
        
    @classmethod
    def _normalize(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        known = {f.name for f in fields(cls)}
        normalized = {}
        for key, value in data.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                logger.warning(f"Ignoring unknown conversion option: {key}")
                continue
            normalized[name] = value
        return normalized


def load_options(path: Union[str, Path]) -> ConversionOptions:
    """Convenience wrapper around ConversionOptions.from_file."""
    return ConversionOptions.from_file(path)


DEFAULT_OPTIONS = ConversionOptions()


__all__ = ['ConversionOptions', 'DEFAULT_OPTIONS', 'load_options']
