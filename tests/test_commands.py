import pytest
from latex_mathml.commands import CommandKind, CommandSpec, build_command_registry
from latex_mathml.config import ConversionOptions
from latex_mathml.errors import (
    InvalidSyntaxError,
    MissingArgumentError,
    UnknownCommandError,
)
from latex_mathml.nodes import ElementNode, TextNode
from latex_mathml.symbols import SymbolTable

from test_utils import child_names, leaf


class TestCommandRegistry:

    def test_categories_mapped_to_kinds(self):
        registry = build_command_registry(SymbolTable())

        assert registry[r'\alpha'] == CommandSpec(CommandKind.IDENTIFIER, 'α')
        assert registry[r'\leq'] == CommandSpec(CommandKind.OPERATOR, '≤')
        assert registry[r'\sum'].kind is CommandKind.LARGE_OPERATOR
        assert registry[r'\quad'] == CommandSpec(CommandKind.SPACE, '1em')
        assert registry[r'\frac'].kind is CommandKind.FRACTION
        assert registry[r'\begin'].kind is CommandKind.ENVIRONMENT
        assert registry[r'\end'].kind is CommandKind.CLOSER

    def test_registry_is_immutable(self):
        registry = build_command_registry(SymbolTable())

        with pytest.raises(TypeError):
            registry[r'\alpha'] = CommandSpec(CommandKind.IDENTIFIER, 'a')


class TestSymbolCommands:

    def test_greek_letters(self, latex_parser):
        node = latex_parser.parse(r"\alpha + \beta = \gamma")

        assert node.children[0] == leaf('mi', 'α')
        assert node.children[2] == leaf('mi', 'β')
        assert node.children[4] == leaf('mi', 'γ')

    def test_operators(self, latex_parser):
        node = latex_parser.parse(r"a \leq b \times c")

        assert node.children[1] == leaf('mo', '≤')
        assert node.children[3] == leaf('mo', '×')

    def test_functions(self, latex_parser):
        node = latex_parser.parse(r"\sin x")
        assert node.children[0] == leaf('mi', 'sin')

    def test_spacing(self, latex_parser):
        node = latex_parser.parse(r"a \quad b \, c")

        assert node.children[1] == ElementNode('mspace', {'width': '1em'}, [])
        assert node.children[3] == ElementNode('mspace', {'width': '0.1667em'}, [])

    def test_escaped_characters(self, latex_parser):
        node = latex_parser.parse(r"\$100 \% \{")

        assert node.children[0] == leaf('mi', '$')
        assert node.children[2] == leaf('mi', '%')
        assert node.children[3] == ElementNode('mo', {'stretchy': 'false'}, [TextNode('{')])

    def test_line_break(self, latex_parser):
        node = latex_parser.parse(r"a \\ b")
        assert node.children[1] == ElementNode('mspace', {'linebreak': 'newline'}, [])

    @pytest.mark.parametrize("command,name,char", [
        (r"\Alpha", 'mi', 'Α'), (r"\Beta", 'mi', 'Β'), (r"\Chi", 'mi', 'Χ'),
        (r"\Epsilon", 'mi', 'Ε'), (r"\Eta", 'mi', 'Η'), (r"\Iota", 'mi', 'Ι'),
        (r"\Kappa", 'mi', 'Κ'), (r"\Mu", 'mi', 'Μ'), (r"\Nu", 'mi', 'Ν'),
        (r"\Omicron", 'mi', 'Ο'), (r"\Rho", 'mi', 'Ρ'), (r"\Tau", 'mi', 'Τ'),
        (r"\Zeta", 'mi', 'Ζ'),
        (r"\lcm", 'mi', 'lcm'),
        (r"\square", 'mi', '□'), (r"\circle", 'mi', '○'),
        (r"\measuredangle", 'mi', '∡'), (r"\sphericalangle", 'mi', '∢'),
        (r"\bigcirc", 'mo', '○'),
        (r"\lhd", 'mo', '⊲'), (r"\rhd", 'mo', '⊳'), (r"\unlhd", 'mo', '⊴'), (r"\unrhd", 'mo', '⊵'),
        (r"\triangleleft", 'mo', '◁'), (r"\triangleright", 'mo', '▷'),
        (r"\trianglelefteq", 'mo', '⊴'), (r"\trianglerighteq", 'mo', '⊵'),
        (r"\ulcorner", 'mo', '⌜'), (r"\urcorner", 'mo', '⌝'),
        (r"\llcorner", 'mo', '⌞'), (r"\lrcorner", 'mo', '⌟'),
        (r"\notni", 'mo', '∌'), (r"\nparallel", 'mo', '∦'),
    ])
    def test_catalogue_entries_known_in_strict_mode(self, latex_parser, strict_options, command, name, char):
        node = latex_parser.parse(command, strict_options)

        assert node.name == name
        assert node.text == char

    def test_corners_as_delimiters(self, latex_parser):
        node = latex_parser.parse(r"\left\ulcorner x \right\urcorner")

        assert node.children[0] == ElementNode('mo', {'fence': 'true', 'stretchy': 'true'}, [TextNode('⌜')])
        assert node.children[2].text == '⌝'


class TestArgumentCommands:

    def test_fraction(self, latex_parser):
        """\\frac{1}{2} has exactly two numeric children."""
        node = latex_parser.parse(r"\frac{1}{2}")

        assert node == ElementNode('mfrac', {}, [leaf('mn', '1'), leaf('mn', '2')])

    def test_display_fraction(self, latex_parser):
        node = latex_parser.parse(r"\dfrac{a}{b}")

        assert node.name == 'mstyle'
        assert node.attributes == {'displaystyle': 'true'}
        assert node.children[0].name == 'mfrac'

    def test_empty_fraction_groups(self, latex_parser):
        empty = ElementNode('mrow', {}, [])
        assert latex_parser.parse(r"\frac{}{}") == ElementNode('mfrac', {}, [empty, empty])

    def test_empty_root_degree(self, latex_parser):
        node = latex_parser.parse(r"\sqrt[]{x}")

        assert node == ElementNode('mroot', {}, [leaf('mi', 'x'), ElementNode('mrow', {}, [])])

    def test_fraction_groups_collapse(self, latex_parser):
        node = latex_parser.parse(r"\frac{a+b}{c}")

        assert child_names(node) == ['mrow', 'mi']

    @pytest.mark.parametrize("latex,command,index", [
        (r"\frac", r"\frac", 1),
        (r"\frac{a}", r"\frac", 2),
        (r"\frac12", r"\frac", 1),
        (r"\frac{a} b", r"\frac", 2),
        (r"\sqrt", r"\sqrt", 1),
        (r"\mathbf x", r"\mathbf", 1),
    ])
    def test_missing_argument(self, latex_parser, latex, command, index):
        """A missing group names the command and the argument index."""
        with pytest.raises(MissingArgumentError) as exc_info:
            latex_parser.parse(latex)

        error = exc_info.value
        assert error.argument_index == index
        assert error.command == command
        assert error.offset == 0

    def test_sqrt(self, latex_parser):
        assert latex_parser.parse(r"\sqrt{x}") == ElementNode('msqrt', {}, [leaf('mi', 'x')])

    def test_sqrt_with_degree(self, latex_parser):
        node = latex_parser.parse(r"\sqrt[3]{x}")
        assert node == ElementNode('mroot', {}, [leaf('mi', 'x'), leaf('mn', '3')])

    def test_root(self, latex_parser):
        node = latex_parser.parse(r"\root{n}\of{x}")
        assert node == ElementNode('mroot', {}, [leaf('mi', 'x'), leaf('mi', 'n')])

    def test_binomial(self, latex_parser):
        node = latex_parser.parse(r"\binom{n}{k}")

        assert child_names(node) == ['mo', 'mfrac', 'mo']
        assert node.children[1].attributes == {'linethickness': '0'}

    def test_font_style(self, latex_parser):
        node = latex_parser.parse(r"\mathbb{R}")
        assert node == ElementNode('mstyle', {'mathvariant': 'double-struck'}, [leaf('mi', 'R')])

    def test_text(self, latex_parser):
        assert latex_parser.parse(r"\text{if }") == leaf('mtext', 'if ')

    def test_text_collapses_whitespace(self, latex_parser):
        assert latex_parser.parse(r"\text{a   b}") == leaf('mtext', 'a b')

    def test_text_preserves_whitespace(self, latex_parser):
        options = ConversionOptions(preserve_whitespace=True)
        assert latex_parser.parse(r"\text{a   b}", options) == leaf('mtext', 'a   b')

    def test_text_keeps_raw_content(self, latex_parser):
        """Text content is not parsed as math; escaped specials are unescaped."""
        assert latex_parser.parse(r"\text{x^2 \& {y}}") == leaf('mtext', 'x^2 & {y}')

    def test_styled_text(self, latex_parser):
        node = latex_parser.parse(r"\textbf{bold}")
        assert node == ElementNode('mtext', {'mathvariant': 'bold'}, [TextNode('bold')])

    def test_operatorname(self, latex_parser):
        assert latex_parser.parse(r"\operatorname{rank}") == leaf('mi', 'rank')

    def test_accent(self, latex_parser):
        node = latex_parser.parse(r"\hat{x}")

        assert node.name == 'mover'
        assert node.attributes == {'accent': 'true'}
        assert node.children[1] == ElementNode('mo', {'stretchy': 'false'}, [TextNode('^')])

    def test_stretchy_accent(self, latex_parser):
        node = latex_parser.parse(r"\overline{AB}")
        assert node.children[1].attributes == {'stretchy': 'true'}

    def test_under_accent(self, latex_parser):
        node = latex_parser.parse(r"\underbrace{a+b}")

        assert node.name == 'munder'
        assert node.attributes == {'accentunder': 'true'}

    def test_overset(self, latex_parser):
        node = latex_parser.parse(r"\overset{def}{=}")

        assert node.name == 'mover'
        assert node.children[0] == leaf('mo', '=')

    def test_underset(self, latex_parser):
        node = latex_parser.parse(r"\underset{n}{\max}")

        assert node.name == 'munder'
        assert node.children[1] == leaf('mi', 'n')

    def test_boxed(self, latex_parser):
        node = latex_parser.parse(r"\boxed{x}")
        assert node == ElementNode('menclose', {'notation': 'box'}, [leaf('mi', 'x')])

    def test_phantom(self, latex_parser):
        assert latex_parser.parse(r"\phantom{x}").name == 'mphantom'

    def test_pmod(self, latex_parser):
        node = latex_parser.parse(r"\pmod{n}")
        assert node.text == '(modn)'

    def test_hspace(self, latex_parser):
        node = latex_parser.parse(r"\hspace{ 2em }")
        assert node == ElementNode('mspace', {'width': '2em'}, [])


class TestDelimiters:

    def test_left_right(self, latex_parser):
        node = latex_parser.parse(r"\left( x \right)")

        assert child_names(node) == ['mo', 'mi', 'mo']
        assert node.children[0].attributes == {'fence': 'true', 'stretchy': 'true'}
        assert node.children[2].text == ')'

    def test_left_right_mixed(self, latex_parser):
        node = latex_parser.parse(r"\left[ 0, 1 \right)")

        assert node.children[0].text == '['
        assert node.children[-1].text == ')'

    def test_invisible_delimiter(self, latex_parser):
        node = latex_parser.parse(r"\left. \frac{a}{b} \right|")
        assert child_names(node) == ['mfrac', 'mo']

    def test_fence_commands(self, latex_parser):
        node = latex_parser.parse(r"\left\langle v \right\rangle")

        assert node.children[0].text == '⟨'
        assert node.children[2].text == '⟩'

    def test_angle_aliases(self, latex_parser):
        node = latex_parser.parse(r"\left< v \right>")
        assert node.text == '⟨v⟩'

    def test_middle(self, latex_parser):
        node = latex_parser.parse(r"\left\{ x \middle| x > 0 \right\}")
        inner = node.children[1]

        assert ElementNode('mo', {'stretchy': 'true'}, [TextNode('|')]) in inner.children

    def test_left_group_takes_script(self, latex_parser):
        node = latex_parser.parse(r"\left( \frac{a}{b} \right)^2")

        assert node.name == 'msup'
        assert child_names(node.children[0]) == ['mo', 'mfrac', 'mo']

    def test_missing_right(self, latex_parser):
        with pytest.raises(InvalidSyntaxError):
            latex_parser.parse(r"\left( x")

    def test_stray_right(self, latex_parser):
        with pytest.raises(InvalidSyntaxError):
            latex_parser.parse(r"x \right)")

    def test_invalid_delimiter(self, latex_parser):
        with pytest.raises(InvalidSyntaxError):
            latex_parser.parse(r"\left\alpha x \right)")

    def test_missing_delimiter(self, latex_parser):
        with pytest.raises(MissingArgumentError):
            latex_parser.parse(r"\left")

    def test_big(self, latex_parser):
        node = latex_parser.parse(r"\big( x \big)")

        assert node.children[0] == ElementNode('mo', {'minsize': '1.2em', 'maxsize': '1.2em'}, [TextNode('(')])


class TestUnknownCommands:

    def test_unknown_command_as_text(self, latex_parser):
        """Unknown commands degrade to their literal text in non-strict mode."""
        node = latex_parser.parse(r"\unknowncommand{x}")

        assert node.children == [leaf('mtext', r'\unknowncommand'), leaf('mi', 'x')]

    def test_unknown_command_strict(self, latex_parser, strict_options):
        with pytest.raises(UnknownCommandError) as exc_info:
            latex_parser.parse(r"a + \foo", strict_options)

        assert exc_info.value.text == r'\foo'
        assert exc_info.value.offset == 4

    def test_unknown_command_allowed_in_strict_mode(self, latex_parser):
        options = ConversionOptions(strict_mode=True, allow_unknown_commands=True)
        assert latex_parser.parse(r"\foo", options) == leaf('mtext', r'\foo')

    def test_lone_backslash(self, latex_parser, strict_options):
        """A trailing backslash is never a registered command."""
        assert latex_parser.parse("x \\").children[1] == leaf('mtext', '\\')

        with pytest.raises(UnknownCommandError):
            latex_parser.parse("x \\", strict_options)
