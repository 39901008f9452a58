import pytest
import tempfile
from pathlib import Path
from latex_mathml.config import ConversionOptions
from latex_mathml.latex_parser import LaTeXParser
from latex_mathml.mathml_converter import LaTeXConverter
from latex_mathml.mathml_generator import MathMLGenerator
from latex_mathml.validator import ASTValidator, InputValidator


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_latex_formulas():
    """Sample LaTeX formulas for testing."""
    return {
        'simple': 'x + y = z',
        'numbers': '1 + 2',
        'fraction': r'\frac{a}{b}',
        'sqrt': r'\sqrt{x^2 + y^2}',
        'matrix': r'\begin{pmatrix} a & b \\ c & d \end{pmatrix}',
        'align': r'\begin{align} x &= 1 \\ y &= 2 \end{align}',
        'cases': r'\begin{cases} x & \text{if } x > 0 \\ -x & \text{otherwise} \end{cases}',
        'complex': r'\int_0^{\infty} e^{-x^2} \, dx = \frac{\sqrt{\pi}}{2}',
        'nested': r'x^{y^z}',
        'greek': r'\alpha + \beta = \gamma',
        'accents': r'\hat{x} + \tilde{y} + \vec{z}',
        'text': r'\text{Hello } x + y',
        'binom': r'\binom{n}{k} = \frac{n!}{k!(n-k)!}',
        'sum_product': r'\sum_{i=1}^n i = \prod_{j=1}^m j',
        'escaped_dollar': r'Price: \$100',
        'multiline': r'\begin{multline} a + b + c + d + e + f \\ + g + h + i = j \end{multline}',
        'quadratic': r'x = \frac{-b \pm \sqrt{b^2 - 4ac}}{2a}',
        'delimiters': r'\left( \frac{a}{b} \right)^2',
    }


@pytest.fixture
def latex_parser():
    """LaTeX parser instance."""
    return LaTeXParser()


@pytest.fixture
def converter():
    """Converter with default options."""
    return LaTeXConverter()


@pytest.fixture
def generator():
    """MathML generator instance."""
    return MathMLGenerator()


@pytest.fixture
def ast_validator():
    return ASTValidator()


@pytest.fixture
def input_validator():
    return InputValidator()


@pytest.fixture
def default_options():
    return ConversionOptions()


@pytest.fixture
def strict_options():
    """Strict options rejecting unknown commands and environments."""
    return ConversionOptions(strict_mode=True)


@pytest.fixture
def symbol_config(temp_dir):
    """YAML file adding custom symbols."""
    path = temp_dir / 'symbols.yaml'
    path.write_text(
        "greek_letters:\n"
        "  varbeta: 'ϐ'\n"
        "operators:\n"
        "  '\\between': '≬'\n"
        "symbol_operators:\n"
        "  '@': '⊚'\n",
        encoding='utf-8'
    )
    return path
