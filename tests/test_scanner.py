"""Test scanner terminals: delimiters, identifiers, literals, states."""

import pytest

from hbsyntax.errors import ScanError
from hbsyntax.scanner import Condition, Scanner
from hbsyntax.tokens import Location, Terminal

from .conftest import assert_types, assert_values


class TestContent:
    def test_plain_text(self, lex):
        tokens = lex("Just plain text")
        assert_types(tokens, [Terminal.CONTENT])
        assert_values(tokens, ["Just plain text"])

    def test_empty_input(self, lex):
        assert lex("") == []

    def test_text_around_mustache(self, lex):
        tokens = lex("Hello {{name}}!")
        assert_types(
            tokens,
            [Terminal.CONTENT, Terminal.OPEN, Terminal.ID, Terminal.CLOSE, Terminal.CONTENT],
        )
        assert_values(tokens, ["Hello ", "{{", "name", "}}", "!"])

    def test_eof_repeats(self):
        scanner = Scanner("x")
        assert scanner.lex() == Terminal.CONTENT
        assert scanner.lex() == Terminal.EOF
        assert scanner.lex() == Terminal.EOF


class TestOpeners:
    @pytest.mark.parametrize(
        ("source", "terminal", "text"),
        [
            ("{{x}}", Terminal.OPEN, "{{"),
            ("{{&x}}", Terminal.OPEN, "{{&"),
            ("{{{x}}}", Terminal.OPEN_UNESCAPED, "{{{"),
            ("{{#x}}", Terminal.OPEN_BLOCK, "{{#"),
            ("{{#*x}}", Terminal.OPEN_BLOCK, "{{#*"),
            ("{{/x}}", Terminal.OPEN_ENDBLOCK, "{{/"),
            ("{{^x}}", Terminal.OPEN_INVERSE, "{{^"),
            ("{{> x}}", Terminal.OPEN_PARTIAL, "{{>"),
            ("{{#> x}}", Terminal.OPEN_PARTIAL_BLOCK, "{{#>"),
            ("{{~x}}", Terminal.OPEN, "{{~"),
            ("{{~#x}}", Terminal.OPEN_BLOCK, "{{~#"),
        ],
    )
    def test_opener(self, lex, source, terminal, text):
        tokens = lex(source)
        assert tokens[0] == (terminal, text)

    def test_close_unescaped(self, lex):
        tokens = lex("{{{html}}}")
        assert_types(tokens, [Terminal.OPEN_UNESCAPED, Terminal.ID, Terminal.CLOSE_UNESCAPED])

    def test_strip_close(self, lex):
        tokens = lex("{{~name~}}")
        assert_values(tokens, ["{{~", "name", "~}}"])


class TestInverse:
    def test_standalone_else(self, lex):
        tokens = lex("{{else}}")
        assert tokens == [(Terminal.INVERSE, "{{else}}")]

    def test_standalone_caret(self, lex):
        tokens = lex("{{^}}")
        assert tokens == [(Terminal.INVERSE, "{{^}}")]

    def test_else_with_spaces(self, lex):
        tokens = lex("{{ else }}")
        assert tokens == [(Terminal.INVERSE, "{{ else }}")]

    def test_inverse_chain(self, lex):
        tokens = lex("{{else if x}}")
        assert_types(
            tokens,
            [Terminal.OPEN_INVERSE_CHAIN, Terminal.ID, Terminal.ID, Terminal.CLOSE],
        )
        assert tokens[0][1] == "{{else"

    def test_inverse_returns_to_content(self, lex):
        tokens = lex("a{{else}}b")
        assert_types(tokens, [Terminal.CONTENT, Terminal.INVERSE, Terminal.CONTENT])


class TestComments:
    def test_short_comment(self, lex):
        tokens = lex("{{! note }}")
        assert tokens == [(Terminal.COMMENT, "{{! note }}")]

    def test_long_comment(self, lex):
        tokens = lex("{{!-- has }} inside --}}")
        assert tokens == [(Terminal.COMMENT, "{{!-- has }} inside --}}")]

    def test_long_comment_strip(self, lex):
        tokens = lex("{{!-- x --~}}after")
        assert_types(tokens, [Terminal.COMMENT, Terminal.CONTENT])
        assert_values(tokens, ["{{!-- x --~}}", "after"])

    def test_long_comment_extra_dash(self, lex):
        tokens = lex("{{!-- x ---}}")
        assert tokens == [(Terminal.COMMENT, "{{!-- x ---}}")]


class TestIdentifiers:
    def test_path(self, lex):
        tokens = lex("{{user.name}}")
        assert_types(
            tokens,
            [Terminal.OPEN, Terminal.ID, Terminal.SEP, Terminal.ID, Terminal.CLOSE],
        )

    def test_slash_separator(self, lex):
        tokens = lex("{{user/name}}")
        assert tokens[2] == (Terminal.SEP, "/")

    def test_trailing_dot_lexes_as_id(self, lex):
        tokens = lex("{{user.}}")
        assert_types(tokens, [Terminal.OPEN, Terminal.ID, Terminal.ID, Terminal.CLOSE])
        assert tokens[2][1] == "."

    def test_parent_path(self, lex):
        tokens = lex("{{../name}}")
        assert tokens[1] == (Terminal.ID, "..")
        assert tokens[2] == (Terminal.SEP, "/")

    def test_bracket_literal(self, lex):
        tokens = lex("{{[foo bar]}}")
        assert tokens[1] == (Terminal.ID, "[foo bar]")

    def test_bracket_escape(self, lex):
        tokens = lex("{{[a\\]b]}}")
        assert tokens[1] == (Terminal.ID, "[a]b]")

    def test_identifier_needs_lookahead(self, lex):
        tokens = lex("{{a,b}}")
        assert_types(
            tokens,
            [Terminal.OPEN, Terminal.INVALID, Terminal.INVALID, Terminal.ID, Terminal.CLOSE],
        )

    def test_incomplete_identifier_at_eof(self, lex):
        tokens = lex("{{ab")
        assert_types(tokens, [Terminal.OPEN, Terminal.INVALID, Terminal.INVALID])

    def test_data(self, lex):
        tokens = lex("{{@index}}")
        assert_types(tokens, [Terminal.OPEN, Terminal.DATA, Terminal.ID, Terminal.CLOSE])

    def test_hash(self, lex):
        tokens = lex("{{h key=value}}")
        assert_types(
            tokens,
            [
                Terminal.OPEN,
                Terminal.ID,
                Terminal.ID,
                Terminal.EQUALS,
                Terminal.ID,
                Terminal.CLOSE,
            ],
        )

    def test_subexpression(self, lex):
        tokens = lex("{{outer (inner x)}}")
        assert_types(
            tokens,
            [
                Terminal.OPEN,
                Terminal.ID,
                Terminal.OPEN_SEXPR,
                Terminal.ID,
                Terminal.ID,
                Terminal.CLOSE_SEXPR,
                Terminal.CLOSE,
            ],
        )

    def test_block_params(self, lex):
        tokens = lex("{{#each items as |item i|}}")
        assert_types(
            tokens,
            [
                Terminal.OPEN_BLOCK,
                Terminal.ID,
                Terminal.ID,
                Terminal.OPEN_BLOCK_PARAMS,
                Terminal.ID,
                Terminal.ID,
                Terminal.CLOSE_BLOCK_PARAMS,
                Terminal.CLOSE,
            ],
        )
        assert tokens[3][1] == "as |"


class TestLiterals:
    def test_double_quoted(self, lex):
        tokens = lex('{{t "hello"}}')
        assert tokens[2] == (Terminal.STRING, "hello")

    def test_single_quoted(self, lex):
        tokens = lex("{{t 'hello'}}")
        assert tokens[2] == (Terminal.STRING, "hello")

    def test_escaped_quote(self, lex):
        tokens = lex('{{t "a \\"b\\""}}')
        assert tokens[2] == (Terminal.STRING, 'a "b"')

    def test_numbers(self, lex):
        tokens = lex("{{add 1 -2.5}}")
        assert_types(
            tokens,
            [Terminal.OPEN, Terminal.ID, Terminal.NUMBER, Terminal.NUMBER, Terminal.CLOSE],
        )
        assert_values(tokens, ["{{", "add", "1", "-2.5", "}}"])

    def test_keywords(self, lex):
        tokens = lex("{{h true false undefined null}}")
        assert_types(
            tokens,
            [
                Terminal.OPEN,
                Terminal.ID,
                Terminal.BOOLEAN,
                Terminal.BOOLEAN,
                Terminal.UNDEFINED,
                Terminal.NULL,
                Terminal.CLOSE,
            ],
        )

    def test_keyword_prefix_is_identifier(self, lex):
        tokens = lex("{{trueish}}")
        assert tokens[1] == (Terminal.ID, "trueish")


class TestEscapes:
    def test_escaped_mustache(self, lex):
        tokens = lex("\\{{name}}")
        assert tokens == [(Terminal.CONTENT, "{{name}}")]

    def test_escaped_mustache_keeps_prefix(self, lex):
        tokens = lex("a\\{{b}} {{c}}")
        assert_types(
            tokens,
            [Terminal.CONTENT, Terminal.CONTENT, Terminal.OPEN, Terminal.ID, Terminal.CLOSE],
        )
        assert_values(tokens, ["a", "{{b}} ", "{{", "c", "}}"])

    def test_escaped_backslash(self, lex):
        tokens = lex("\\\\{{name}}")
        assert_types(tokens, [Terminal.CONTENT, Terminal.OPEN, Terminal.ID, Terminal.CLOSE])
        assert tokens[0] == (Terminal.CONTENT, "\\")


class TestRawBlocks:
    def test_raw_block(self, lex):
        tokens = lex("{{{{raw}}}} {{x}} {{{{/raw}}}}")
        assert_types(
            tokens,
            [
                Terminal.OPEN_RAW_BLOCK,
                Terminal.ID,
                Terminal.CLOSE_RAW_BLOCK,
                Terminal.CONTENT,
                Terminal.END_RAW_BLOCK,
            ],
        )
        assert_values(tokens, ["{{{{", "raw", "}}}}", " {{x}} ", "raw"])

    def test_nested_raw_block(self, lex):
        tokens = lex("{{{{raw}}}}{{{{inner}}}}x{{{{/inner}}}}{{{{/raw}}}}")
        types = [t[0] for t in tokens]
        assert types[-1] == Terminal.END_RAW_BLOCK
        assert types.count(Terminal.END_RAW_BLOCK) == 1
        assert tokens[-1][1] == "raw"


class TestLocations:
    def test_columns_are_zero_based(self):
        scanner = Scanner("ab{{c}}")
        scanner.lex()
        assert scanner.location == Location(1, 0, 1, 2)
        scanner.lex()
        assert scanner.location == Location(1, 2, 1, 4)

    def test_multiline(self):
        scanner = Scanner("a\n{{b}}")
        assert scanner.lex() == Terminal.CONTENT
        assert scanner.location == Location(1, 0, 2, 0)
        scanner.lex()
        scanner.lex()
        assert scanner.location == Location(2, 2, 2, 3)

    def test_match_vs_text(self):
        scanner = Scanner('{{t "x"}}')
        scanner.lex()
        scanner.lex()
        scanner.lex()
        assert scanner.text == "x"
        assert scanner.match == '"x"'


class TestConditions:
    def test_condition_tracks_expression(self):
        scanner = Scanner("{{a}}")
        assert scanner.condition == Condition.INITIAL
        scanner.lex()
        assert scanner.condition == Condition.MUSTACHE
        scanner.lex()
        scanner.lex()
        assert scanner.condition == Condition.INITIAL

    def test_set_input_resets(self):
        scanner = Scanner("{{a")
        scanner.lex()
        scanner.set_input("text")
        assert scanner.condition == Condition.INITIAL
        assert scanner.lex() == Terminal.CONTENT
        assert scanner.text == "text"


class TestScanErrors:
    def test_unterminated_long_comment(self, lex):
        with pytest.raises(ScanError, match="unterminated comment"):
            lex("{{!-- never closed")

    def test_unterminated_raw_block(self, lex):
        with pytest.raises(ScanError, match="unterminated raw block"):
            lex("{{{{raw}}}} body")

    def test_nul_character(self, lex):
        with pytest.raises(ScanError, match="NUL"):
            lex("a\0b")
