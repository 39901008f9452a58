import pytest
from latex_mathml.config import ConversionOptions
from latex_mathml.errors import (
    InvalidSyntaxError,
    MissingArgumentError,
    UnexpectedTokenError,
    UnmatchedBraceError,
    UnmatchedBracketError,
)
from latex_mathml.latex_parser import LaTeXParser
from latex_mathml.nodes import ElementNode, TextNode

from test_utils import child_names, leaf


class TestLaTeXParser:

    def test_row_of_identifiers_and_operators(self, latex_parser):
        """x + y = z parses to a flat row in source order."""
        node = latex_parser.parse("x + y = z")

        assert node == ElementNode('mrow', {}, [
            leaf('mi', 'x'), leaf('mo', '+'), leaf('mi', 'y'), leaf('mo', '='), leaf('mi', 'z')
        ])

    def test_numbers(self, latex_parser):
        node = latex_parser.parse("1 + 2")

        assert node.children == [leaf('mn', '1'), leaf('mo', '+'), leaf('mn', '2')]

    def test_decimal_number(self, latex_parser):
        assert latex_parser.parse("3.14") == leaf('mn', '3.14')

    def test_single_child_unwrapped(self, latex_parser):
        assert latex_parser.parse("x") == leaf('mi', 'x')

    def test_empty_input(self, latex_parser):
        assert latex_parser.parse("") == TextNode('')
        assert latex_parser.parse("   ") == TextNode('')

    def test_symbol_classification(self, latex_parser):
        """Known characters are operators, letters identifiers, anything else text."""
        node = latex_parser.parse("a - b * c @")

        assert node.children == [
            leaf('mi', 'a'), leaf('mo', '−'), leaf('mi', 'b'),
            leaf('mo', '∗'), leaf('mi', 'c'), leaf('mtext', '@')
        ]

    def test_non_string_input(self, latex_parser):
        with pytest.raises(TypeError):
            latex_parser.parse(None)

    def test_registries_are_read_only(self, latex_parser):
        with pytest.raises(TypeError):
            latex_parser.command_registry[r'\foo'] = None
        with pytest.raises(TypeError):
            latex_parser.environment_registry['foo'] = None

    def test_custom_symbols(self, symbol_config):
        parser = LaTeXParser(symbol_config)

        assert parser.parse(r"\varbeta") == leaf('mi', 'ϐ')
        assert parser.parse(r"a \between b").children[1] == leaf('mo', '≬')

    def test_repeated_parses_are_independent(self, latex_parser):
        first = latex_parser.parse(r"\frac{a}{b}")
        with pytest.raises(UnmatchedBraceError):
            latex_parser.parse("{x")
        assert latex_parser.parse(r"\frac{a}{b}") == first


class TestGrouping:

    def test_group_collapses(self, latex_parser):
        """{x} parses to the identical node as x."""
        assert latex_parser.parse("{x}") == latex_parser.parse("x")
        assert latex_parser.parse("{{x}}") == latex_parser.parse("x")

    def test_group_with_several_children(self, latex_parser):
        node = latex_parser.parse("{a+b}c")

        assert child_names(node) == ['mrow', 'mi']
        assert child_names(node.children[0]) == ['mi', 'mo', 'mi']

    def test_empty_group(self, latex_parser):
        assert latex_parser.parse("{}") == TextNode('')
        assert latex_parser.parse("x{}").children == [leaf('mi', 'x'), TextNode('')]

    def test_bracket_group(self, latex_parser):
        node = latex_parser.parse("[a]")

        assert node == ElementNode('mfenced', {'open': '[', 'close': ']'}, [leaf('mi', 'a')])

    def test_unmatched_brace_names_opening_offset(self, latex_parser):
        with pytest.raises(UnmatchedBraceError) as exc_info:
            latex_parser.parse("a + {b + c")

        assert exc_info.value.offset == 4

    def test_unmatched_bracket(self, latex_parser):
        with pytest.raises(UnmatchedBracketError) as exc_info:
            latex_parser.parse("x [y")

        assert exc_info.value.offset == 2

    def test_stray_closing_brace(self, latex_parser):
        with pytest.raises(UnmatchedBraceError) as exc_info:
            latex_parser.parse("a}b")

        assert exc_info.value.offset == 1

    def test_stray_closing_bracket(self, latex_parser):
        with pytest.raises(UnmatchedBracketError):
            latex_parser.parse("a]")

    def test_crossed_delimiters(self, latex_parser):
        """A brace closed inside a bracket reports the unclosed bracket."""
        with pytest.raises(UnmatchedBracketError) as exc_info:
            latex_parser.parse("{a[b}]")

        assert exc_info.value.offset == 2

    def test_balanced_nesting_parses(self, latex_parser):
        latex_parser.parse(r"{[{a}]} + \frac{\sqrt[{3}]{x}}{[y]}")

    def test_nesting_depth_limit(self, latex_parser):
        options = ConversionOptions(max_nesting_depth=5)
        latex_parser.parse("{" * 5 + "x" + "}" * 5, options)

        with pytest.raises(InvalidSyntaxError) as exc_info:
            latex_parser.parse("{" * 6 + "x" + "}" * 6, options)

        assert 'nesting depth' in str(exc_info.value)


class TestScripts:

    def test_superscript(self, latex_parser):
        """x^2 is one superscript node with base x and exponent 2."""
        node = latex_parser.parse("x^2")

        assert node == ElementNode('msup', {}, [leaf('mi', 'x'), leaf('mn', '2')])

    def test_subscript(self, latex_parser):
        assert latex_parser.parse("x_i").name == 'msub'

    @pytest.mark.parametrize("latex", ["x_i^2", "x^2_i"])
    def test_combined_scripts(self, latex_parser, latex):
        """Both scripts on one base combine into a single three-child node."""
        node = latex_parser.parse(latex)

        assert node == ElementNode('msubsup', {}, [leaf('mi', 'x'), leaf('mi', 'i'), leaf('mn', '2')])

    def test_script_takes_one_token(self, latex_parser):
        node = latex_parser.parse("x^ab")

        assert child_names(node) == ['msup', 'mi']
        assert node.children[0].children[1] == leaf('mi', 'a')

    def test_empty_script_argument(self, latex_parser):
        """x_{} keeps two children; the empty group fills its slot with an empty row."""
        node = latex_parser.parse("x_{}")

        assert node == ElementNode('msub', {}, [leaf('mi', 'x'), ElementNode('mrow', {}, [])])

    def test_empty_group_as_base(self, latex_parser):
        node = latex_parser.parse("{}^{14}C")

        assert child_names(node) == ['msup', 'mi']
        assert node.children[0] == ElementNode('msup', {}, [ElementNode('mrow', {}, []), leaf('mn', '14')])

    def test_script_number_taken_whole(self, latex_parser):
        node = latex_parser.parse("x^23")
        assert node.children[1] == leaf('mn', '23')

    def test_script_group(self, latex_parser):
        node = latex_parser.parse("e^{-x^2}")

        assert node.name == 'msup'
        exponent = node.children[1]
        assert child_names(exponent) == ['mo', 'msup']

    def test_nested_scripts(self, latex_parser):
        node = latex_parser.parse("x^{y^z}")

        assert node.name == 'msup'
        assert node.children[1].name == 'msup'

    def test_script_binds_to_command_result(self, latex_parser):
        node = latex_parser.parse(r"\frac{a}{b}^2")

        assert node.name == 'msup'
        assert node.children[0].name == 'mfrac'

    def test_script_binds_to_parenthesized_group(self, latex_parser):
        """The base of (x+y)^2 is the whole parenthesized run."""
        node = latex_parser.parse("(x+y)^2")

        assert node.name == 'msup'
        base = node.children[0]
        assert base.name == 'mrow'
        assert base.text == '(x+y)'

    def test_parenthesized_group_in_context(self, latex_parser):
        node = latex_parser.parse("a(b)^2c")

        assert child_names(node) == ['mi', 'msup', 'mi']
        assert node.children[1].children[0].text == '(b)'

    def test_unbalanced_paren_base(self, latex_parser):
        node = latex_parser.parse("x)^2")
        assert node.children[1].children[0] == leaf('mo', ')')

    def test_script_binds_to_group(self, latex_parser):
        node = latex_parser.parse("{a+b}^2")

        assert node.name == 'msup'
        assert node.children[0].name == 'mrow'

    def test_double_superscript(self, latex_parser):
        with pytest.raises(InvalidSyntaxError):
            latex_parser.parse("x^2^3")

    def test_double_subscript(self, latex_parser):
        with pytest.raises(InvalidSyntaxError):
            latex_parser.parse("x_1_2")

    def test_scripts_on_separate_bases(self, latex_parser):
        node = latex_parser.parse("x^2 y^2")
        assert child_names(node) == ['msup', 'msup']

    @pytest.mark.parametrize("latex", ["^2", "_i", "x + {^2}"])
    def test_missing_base(self, latex_parser, latex):
        with pytest.raises(MissingArgumentError) as exc_info:
            latex_parser.parse(latex)

        assert exc_info.value.argument_index == 0

    @pytest.mark.parametrize("latex", ["x^", "x_", "{x^}", "x^_2"])
    def test_missing_script_argument(self, latex_parser, latex):
        with pytest.raises(MissingArgumentError) as exc_info:
            latex_parser.parse(latex)

        assert exc_info.value.argument_index == 1

    def test_prime(self, latex_parser):
        node = latex_parser.parse("f'")
        assert node.children == [leaf('mi', 'f'), leaf('mo', '′')]


class TestLargeOperators:

    def test_sum_limits(self, latex_parser):
        """Large operators take their scripts as under/over limits."""
        node = latex_parser.parse(r"\sum_{i=1}^n i")

        assert child_names(node) == ['munderover', 'mi']
        base = node.children[0].children[0]
        assert base.attributes == {'largeop': 'true', 'movablelimits': 'true'}

    def test_integral_keeps_scripts(self, latex_parser):
        node = latex_parser.parse(r"\int_0^1 x dx")
        assert node.children[0].name == 'msubsup'

    def test_lim(self, latex_parser):
        node = latex_parser.parse(r"\lim_{x \to 0} f")
        assert node.children[0].name == 'munder'

    def test_limits_keeps_operator_as_base(self, latex_parser, strict_options):
        node = latex_parser.parse(r"\sum\limits_0^1", strict_options)

        assert node.name == 'munderover'
        assert node.children[0].text == '∑'

    def test_limits_on_integral(self, latex_parser):
        node = latex_parser.parse(r"\int\limits_0^1 f")

        assert node.children[0].name == 'munderover'
        assert node.children[0].children[0].attributes['movablelimits'] == 'true'

    def test_nolimits(self, latex_parser):
        node = latex_parser.parse(r"\sum\nolimits_{i} x_i")

        assert child_names(node) == ['msub', 'msub']
        assert node.children[0].children[0].attributes['movablelimits'] == 'false'

    def test_limits_without_operator_ignored(self, latex_parser):
        assert latex_parser.parse(r"\limits x") == leaf('mi', 'x')
        assert latex_parser.parse(r"a\nolimits^2").name == 'msup'

    def test_limits_as_script_argument(self, latex_parser):
        with pytest.raises(InvalidSyntaxError):
            latex_parser.parse(r"x^\limits")


class TestDebugMode:

    def test_debug_adds_offsets_only(self, latex_parser):
        """debug_mode adds attributes but never changes the tree's shape."""
        latex = r"a + \frac{b}{c}^2"
        plain = latex_parser.parse(latex)
        debug = latex_parser.parse(latex, ConversionOptions(debug_mode=True))

        assert child_names(debug) == child_names(plain)
        assert debug.children[0].attributes == {'data-offset': '0'}
        assert debug.children[2].children[0].attributes['data-offset'] == '4'
        assert plain.children[0].attributes == {}


class TestParserEntryPoints:

    def test_parse_expression_with_stop(self, latex_parser):
        context = latex_parser.create_context("a b | c")
        node = latex_parser.parse_expression(context, stop=lambda token: token.value == '|')

        assert child_names(node) == ['mi', 'mi']
        assert context.peek().value == '|'

    def test_parse_command(self, latex_parser):
        context = latex_parser.create_context(r"\sqrt{x} y")
        node = latex_parser.parse_command(context)

        assert node.name == 'msqrt'
        assert context.peek().value == 'y'

    def test_parse_environment(self, latex_parser):
        context = latex_parser.create_context(r"\begin{matrix} a \end{matrix} b")
        node = latex_parser.parse_environment(context)

        assert node.name == 'mtable'
        assert context.peek().value == 'b'

    def test_trailing_closer_at_top_level(self, latex_parser):
        with pytest.raises(InvalidSyntaxError):
            latex_parser.parse(r"x \right)")

    def test_parse_command_requires_command(self, latex_parser):
        context = latex_parser.create_context("x")
        with pytest.raises(UnexpectedTokenError):
            latex_parser.parse_command(context)
