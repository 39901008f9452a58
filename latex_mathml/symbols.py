import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Union

import yaml


logger = logging.getLogger(__name__)


GREEK_LETTERS = {
    '\\alpha': 'α', '\\beta': 'β', '\\gamma': 'γ', '\\delta': 'δ',
    '\\epsilon': 'ϵ', '\\varepsilon': 'ε', '\\zeta': 'ζ', '\\eta': 'η',
    '\\theta': 'θ', '\\vartheta': 'ϑ', '\\iota': 'ι', '\\kappa': 'κ',
    '\\varkappa': 'ϰ', '\\lambda': 'λ', '\\mu': 'μ', '\\nu': 'ν',
    '\\xi': 'ξ', '\\omicron': 'ο', '\\pi': 'π', '\\varpi': 'ϖ',
    '\\rho': 'ρ', '\\varrho': 'ϱ', '\\sigma': 'σ', '\\varsigma': 'ς',
    '\\tau': 'τ', '\\upsilon': 'υ', '\\phi': 'ϕ', '\\varphi': 'φ',
    '\\chi': 'χ', '\\psi': 'ψ', '\\omega': 'ω', '\\digamma': 'ϝ',
    '\\Gamma': 'Γ', '\\Delta': 'Δ', '\\Theta': 'Θ', '\\Lambda': 'Λ',
    '\\Xi': 'Ξ', '\\Pi': 'Π', '\\Sigma': 'Σ', '\\Upsilon': 'Υ',
    '\\Phi': 'Φ', '\\Psi': 'Ψ', '\\Omega': 'Ω',
    # capitals written like Latin letters
    '\\Alpha': 'Α', '\\Beta': 'Β', '\\Epsilon': 'Ε', '\\Zeta': 'Ζ',
    '\\Eta': 'Η', '\\Iota': 'Ι', '\\Kappa': 'Κ', '\\Mu': 'Μ',
    '\\Nu': 'Ν', '\\Omicron': 'Ο', '\\Rho': 'Ρ', '\\Tau': 'Τ',
    '\\Chi': 'Χ',
    '\\varGamma': 'Γ', '\\varDelta': 'Δ', '\\varTheta': 'Θ', '\\varLambda': 'Λ',
    '\\varXi': 'Ξ', '\\varPi': 'Π', '\\varSigma': 'Σ', '\\varUpsilon': 'Υ',
    '\\varPhi': 'Φ', '\\varPsi': 'Ψ', '\\varOmega': 'Ω'
}

LETTERLIKE = {
    '\\infty': '∞', '\\partial': '∂', '\\nabla': '∇', '\\emptyset': '∅',
    '\\varnothing': '∅', '\\ell': 'ℓ', '\\hbar': 'ℏ', '\\hslash': 'ℏ',
    '\\aleph': 'ℵ', '\\beth': 'ℶ', '\\gimel': 'ℷ', '\\daleth': 'ℸ',
    '\\imath': 'ı', '\\jmath': 'ȷ', '\\Re': 'ℜ', '\\Im': 'ℑ', '\\wp': '℘',
    '\\prime': '′', '\\angle': '∠', '\\triangle': '△', '\\top': '⊤',
    '\\bot': '⊥', '\\degree': '°', '\\complement': '∁', '\\eth': 'ð',
    '\\clubsuit': '♣', '\\diamondsuit': '♢', '\\heartsuit': '♡', '\\spadesuit': '♠',
    '\\square': '□', '\\circle': '○', '\\measuredangle': '∡', '\\sphericalangle': '∢'
}

OPERATORS = {
    # binary operators
    '\\pm': '±', '\\mp': '∓', '\\times': '×', '\\div': '÷', '\\cdot': '⋅',
    '\\ast': '∗', '\\star': '⋆', '\\circ': '∘', '\\bullet': '∙',
    '\\oplus': '⊕', '\\ominus': '⊖', '\\otimes': '⊗', '\\oslash': '⊘',
    '\\odot': '⊙', '\\wedge': '∧', '\\land': '∧', '\\vee': '∨', '\\lor': '∨',
    '\\cap': '∩', '\\cup': '∪', '\\sqcap': '⊓', '\\sqcup': '⊔',
    '\\setminus': '∖', '\\uplus': '⊎', '\\dagger': '†', '\\ddagger': '‡',
    '\\amalg': '⨿', '\\wr': '≀', '\\diamond': '⋄', '\\bigcirc': '○',
    '\\lhd': '⊲', '\\rhd': '⊳', '\\unlhd': '⊴', '\\unrhd': '⊵',
    '\\triangleleft': '◁', '\\triangleright': '▷',
    '\\bmod': 'mod', '\\mod': 'mod',
    # relations
    '\\neq': '≠', '\\ne': '≠', '\\leq': '≤', '\\le': '≤', '\\geq': '≥',
    '\\ge': '≥', '\\leqslant': '⩽', '\\geqslant': '⩾', '\\ll': '≪', '\\gg': '≫',
    '\\lt': '<', '\\gt': '>',
    '\\subset': '⊂', '\\supset': '⊃', '\\subseteq': '⊆', '\\supseteq': '⊇',
    '\\subsetneq': '⊊', '\\supsetneq': '⊋', '\\sqsubseteq': '⊑', '\\sqsupseteq': '⊒',
    '\\in': '∈', '\\notin': '∉', '\\ni': '∋', '\\notni': '∌', '\\sim': '∼', '\\simeq': '≃',
    '\\approx': '≈', '\\cong': '≅', '\\equiv': '≡', '\\propto': '∝',
    '\\parallel': '∥', '\\nparallel': '∦', '\\perp': '⊥', '\\mid': '∣', '\\nmid': '∤',
    '\\vdash': '⊢', '\\dashv': '⊣', '\\models': '⊨', '\\prec': '≺',
    '\\succ': '≻', '\\preceq': '⪯', '\\succeq': '⪰', '\\doteq': '≐',
    '\\asymp': '≍', '\\bowtie': '⋈', '\\smile': '⌣', '\\frown': '⌢',
    '\\colon': ':', '\\coloneqq': '≔',
    '\\trianglelefteq': '⊴', '\\trianglerighteq': '⊵',
    # arrows
    '\\to': '→', '\\rightarrow': '→', '\\leftarrow': '←', '\\gets': '←',
    '\\leftrightarrow': '↔', '\\Rightarrow': '⇒', '\\Leftarrow': '⇐',
    '\\Leftrightarrow': '⇔', '\\implies': '⟹', '\\impliedby': '⟸',
    '\\iff': '⟺', '\\longrightarrow': '⟶', '\\longleftarrow': '⟵',
    '\\longleftrightarrow': '⟷', '\\Longrightarrow': '⟹', '\\Longleftarrow': '⟸',
    '\\Longleftrightarrow': '⟺', '\\mapsto': '↦', '\\longmapsto': '⟼',
    '\\uparrow': '↑', '\\downarrow': '↓', '\\updownarrow': '↕',
    '\\Uparrow': '⇑', '\\Downarrow': '⇓', '\\Updownarrow': '⇕',
    '\\hookrightarrow': '↪', '\\hookleftarrow': '↩', '\\rightharpoonup': '⇀',
    '\\rightharpoondown': '⇁', '\\leftharpoonup': '↼', '\\leftharpoondown': '↽',
    '\\rightleftharpoons': '⇌', '\\nearrow': '↗', '\\searrow': '↘',
    '\\swarrow': '↙', '\\nwarrow': '↖',
    # logic and sets
    '\\forall': '∀', '\\exists': '∃', '\\nexists': '∄', '\\neg': '¬',
    '\\lnot': '¬', '\\therefore': '∴', '\\because': '∵',
    # dots
    '\\ldots': '…', '\\dots': '…', '\\cdots': '⋯', '\\vdots': '⋮', '\\ddots': '⋱'
}

FENCES = {
    '\\{': '{', '\\}': '}', '\\lbrace': '{', '\\rbrace': '}',
    '\\langle': '⟨', '\\rangle': '⟩', '\\lfloor': '⌊', '\\rfloor': '⌋',
    '\\lceil': '⌈', '\\rceil': '⌉', '\\|': '‖', '\\vert': '|', '\\Vert': '‖',
    '\\lvert': '|', '\\rvert': '|', '\\lVert': '‖', '\\rVert': '‖',
    '\\backslash': '\\', '\\lbrack': '[', '\\rbrack': ']',
    '\\ulcorner': '⌜', '\\urcorner': '⌝', '\\llcorner': '⌞', '\\lrcorner': '⌟'
}

LARGE_OPERATORS = {
    '\\sum': '∑', '\\prod': '∏', '\\coprod': '∐', '\\bigcup': '⋃',
    '\\bigcap': '⋂', '\\bigoplus': '⨁', '\\bigotimes': '⨂', '\\bigodot': '⨀',
    '\\bigvee': '⋁', '\\bigwedge': '⋀', '\\bigsqcup': '⨆', '\\biguplus': '⨄'
}

INTEGRALS = {
    '\\int': '∫', '\\iint': '∬', '\\iiint': '∭', '\\oint': '∮',
    '\\oiint': '∯', '\\oiiint': '∰'
}

FUNCTIONS = {
    '\\sin': 'sin', '\\cos': 'cos', '\\tan': 'tan', '\\cot': 'cot',
    '\\sec': 'sec', '\\csc': 'csc', '\\arcsin': 'arcsin', '\\arccos': 'arccos',
    '\\arctan': 'arctan', '\\sinh': 'sinh', '\\cosh': 'cosh', '\\tanh': 'tanh',
    '\\coth': 'coth', '\\log': 'log', '\\ln': 'ln', '\\lg': 'lg',
    '\\exp': 'exp', '\\arg': 'arg', '\\deg': 'deg', '\\dim': 'dim',
    '\\hom': 'hom', '\\ker': 'ker', '\\lcm': 'lcm'
}

LIMIT_FUNCTIONS = {
    '\\lim': 'lim', '\\limsup': 'lim sup', '\\liminf': 'lim inf',
    '\\sup': 'sup', '\\inf': 'inf', '\\max': 'max', '\\min': 'min',
    '\\det': 'det', '\\gcd': 'gcd', '\\Pr': 'Pr', '\\argmax': 'arg max',
    '\\argmin': 'arg min'
}

SPACING = {
    '\\quad': '1em', '\\qquad': '2em', '\\,': '0.1667em', '\\thinspace': '0.1667em',
    '\\:': '0.2222em', '\\>': '0.2222em', '\\medspace': '0.2222em',
    '\\;': '0.2778em', '\\thickspace': '0.2778em', '\\!': '-0.1667em',
    '\\negthinspace': '-0.1667em', '\\ ': '0.25em', '\\enspace': '0.5em'
}

ESCAPES = {
    '\\%': '%', '\\$': '$', '\\#': '#', '\\&': '&', '\\_': '_'
}

FONT_VARIANTS = {
    '\\mathbf': 'bold', '\\mathit': 'italic', '\\mathrm': 'normal',
    '\\mathsf': 'sans-serif', '\\mathtt': 'monospace', '\\mathcal': 'script',
    '\\mathscr': 'script', '\\mathbb': 'double-struck', '\\mathfrak': 'fraktur',
    '\\boldsymbol': 'bold-italic', '\\bm': 'bold-italic'
}

TEXT_VARIANTS = {
    '\\text': 'normal', '\\textrm': 'normal', '\\textnormal': 'normal',
    '\\mbox': 'normal', '\\textbf': 'bold', '\\textit': 'italic',
    '\\emph': 'italic', '\\textsf': 'sans-serif', '\\texttt': 'monospace'
}

ACCENTS = {
    '\\hat': '^', '\\widehat': '^', '\\check': 'ˇ', '\\tilde': '~',
    '\\widetilde': '~', '\\bar': '¯', '\\overline': '‾', '\\vec': '→',
    '\\overrightarrow': '→', '\\overleftarrow': '←', '\\dot': '˙',
    '\\ddot': '¨', '\\dddot': '⃛', '\\acute': '´', '\\grave': '`',
    '\\breve': '˘', '\\mathring': '˚', '\\overbrace': '⏞'
}

# accents that grow with their base
STRETCHY_ACCENTS = frozenset({
    '\\widehat', '\\widetilde', '\\overline', '\\overrightarrow',
    '\\overleftarrow', '\\overbrace', '\\underline', '\\underbrace',
    '\\underrightarrow', '\\underleftarrow'
})

UNDER_ACCENTS = {
    '\\underline': '_', '\\underbrace': '⏟', '\\underrightarrow': '→',
    '\\underleftarrow': '←'
}

ENCLOSURES = {
    '\\boxed': 'box', '\\cancel': 'updiagonalstrike',
    '\\bcancel': 'downdiagonalstrike', '\\xcancel': 'updiagonalstrike downdiagonalstrike'
}

DELIMITER_SIZES = {
    '\\big': '1.2em', '\\bigl': '1.2em', '\\bigr': '1.2em', '\\bigm': '1.2em',
    '\\Big': '1.623em', '\\Bigl': '1.623em', '\\Bigr': '1.623em', '\\Bigm': '1.623em',
    '\\bigg': '2.047em', '\\biggl': '2.047em', '\\biggr': '2.047em', '\\biggm': '2.047em',
    '\\Bigg': '2.470em', '\\Biggl': '2.470em', '\\Biggr': '2.470em', '\\Biggm': '2.470em'
}

# plain characters rendered as operators, keyed without backslash
SYMBOL_OPERATORS = {
    '+': '+', '-': '−', '*': '∗', '/': '/', '=': '=', '<': '<', '>': '>',
    '(': '(', ')': ')', '|': '|', ',': ',', ';': ';', ':': ':', '!': '!',
    '?': '?', '.': '.', "'": '′'
}

DEFAULT_MAPPINGS = {
    'greek_letters': GREEK_LETTERS,
    'letterlike': LETTERLIKE,
    'operators': OPERATORS,
    'fences': FENCES,
    'large_operators': LARGE_OPERATORS,
    'integrals': INTEGRALS,
    'functions': FUNCTIONS,
    'limit_functions': LIMIT_FUNCTIONS,
    'spacing': SPACING,
    'escapes': ESCAPES,
    'font_variants': FONT_VARIANTS,
    'text_variants': TEXT_VARIANTS,
    'accents': ACCENTS,
    'under_accents': UNDER_ACCENTS,
    'enclosures': ENCLOSURES,
    'delimiter_sizes': DELIMITER_SIZES,
    'symbol_operators': SYMBOL_OPERATORS,
}

# categories whose keys are plain characters rather than commands
_CHARACTER_CATEGORIES = frozenset({'symbol_operators'})


class SymbolTable:
    """Read-only symbol mappings, optionally extended from a YAML/JSON file."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        mappings = {category: dict(values) for category, values in DEFAULT_MAPPINGS.items()}

        if config_path:
            config_path = Path(config_path)
            if config_path.exists():
                self._merge(mappings, self._load_from_file(config_path), config_path)
            else:
                logger.warning(f"Symbol config {config_path} does not exist, using defaults")

        self.mappings: Mapping[str, Mapping[str, str]] = MappingProxyType({
            category: MappingProxyType(values) for category, values in mappings.items()
        })

    def _load_from_file(self, path: Path) -> Dict[str, Dict[str, str]]:
        """Load mappings from YAML/JSON file."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.suffix in ['.yaml', '.yml']:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)

        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load symbol mappings from {path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Symbol mappings in {path} must be a mapping, ignoring file")
            return {}

        logger.info(f"Loaded symbol mappings from {path}")
        return data

    @staticmethod
    def _merge(mappings: Dict[str, Dict[str, str]], overrides: Dict, path: Path):
        for category, values in overrides.items():
            if category not in mappings:
                logger.warning(f"Unknown symbol category '{category}' in {path}")
                continue
            if not isinstance(values, dict):
                logger.warning(f"Symbol category '{category}' in {path} is not a mapping")
                continue

            for key, value in values.items():
                key = str(key)
                if category not in _CHARACTER_CATEGORIES and not key.startswith('\\'):
                    key = '\\' + key
                mappings[category][key] = str(value)

    def get_symbol(self, latex_symbol: str, category: Optional[str] = None) -> Optional[str]:
        """Get Unicode symbol for LaTeX command."""
        if category:
            return self.mappings.get(category, {}).get(latex_symbol)

        for mapping in self.mappings.values():
            if latex_symbol in mapping:
                return mapping[latex_symbol]

        return None

    def category(self, name: str) -> Mapping[str, str]:
        return self.mappings[name]

    def __contains__(self, latex_symbol: str) -> bool:
        return any(latex_symbol in mapping for mapping in self.mappings.values())


__all__ = ['SymbolTable', 'DEFAULT_MAPPINGS', 'STRETCHY_ACCENTS']
