"""Tests for the lexical helpers shared by parsers and analyzers."""

from codescope.parsing import (
    LineIndex,
    cyclomatic_complexity,
    find_calls,
    find_matching_brace,
    mask_comments,
    mask_source,
    parse_parameters,
)


class TestMasking:
    """Comments and literals are blanked without moving any offset."""

    def test_mask_keeps_length_and_lines(self):
        """Masked text has the same length and line breaks as the input."""
        text = "const a = 'x // y' // trailing\n/* block\n comment */ let b = `t\n${c}`\n"
        masked = mask_source(text)
        assert len(masked) == len(text)
        assert masked.count("\n") == text.count("\n")

    def test_mask_blanks_comments(self):
        """Line and block comments become spaces."""
        masked = mask_source("a // if\nb /* while */ c")
        assert "if" not in masked
        assert "while" not in masked
        assert masked.startswith("a ")
        assert masked.endswith(" c")

    def test_mask_keeps_quote_delimiters(self):
        """String contents go, the quotes stay."""
        assert mask_source("x = 'abc'") == "x = '   '"

    def test_mask_comments_keeps_strings(self):
        """mask_comments leaves string literals readable."""
        masked = mask_comments("const q = 'SELECT 1' // note")
        assert "'SELECT 1'" in masked
        assert "note" not in masked

    def test_escaped_quote_inside_string(self):
        """An escaped quote does not end the literal."""
        masked = mask_source(r"s = 'it\'s if' ; if (x) {}")
        assert masked.count("if") == 1

    def test_regex_literal_body_blanked(self):
        """Regex bodies are blanked like strings, delimiters kept."""
        assert mask_source("x = /a+?b/g") == "x = /    /g"
        assert mask_source("return /colou?r/.test(s)") == "return /       /.test(s)"

    def test_division_is_not_a_regex(self):
        """A slash after an operand is division."""
        text = "const r = (a + b) / 2 / c"
        assert mask_source(text) == text

    def test_quote_inside_regex_opens_nothing(self):
        """A backtick or quote in a regex does not start a literal."""
        text = "s.replace(/`/g, '')\nfunction later() {}\n"
        assert "function later" in mask_source(text)
        assert "function later" in mask_comments(text)

    def test_jsx_closing_tags_untouched(self):
        """Closing tags and self-closing elements are not regex literals."""
        text = "<div>{x}</div><Item a={1}/>"
        assert mask_source(text) == text


class TestCyclomaticComplexity:
    """Complexity is one plus the number of decision points."""

    def test_straight_line_function(self):
        """A body without branches has complexity 1."""
        assert cyclomatic_complexity("{ const a = 1; return a + 2 }") == 1

    def test_branches_and_loops(self):
        """if, for, while, case and catch each add one."""
        body = """{
          if (a) { x() }
          for (const i of xs) {}
          while (b) {}
          switch (c) { case 1: break; case 2: break }
          try { y() } catch (e) {}
        }"""
        assert cyclomatic_complexity(body) == 1 + 1 + 1 + 1 + 2 + 1

    def test_else_if_counts_once(self):
        """else if is counted through its if only."""
        assert cyclomatic_complexity("{ if (a) {} else if (b) {} else {} }") == 3

    def test_logical_operators(self):
        """&&, || and ?? each add one."""
        assert cyclomatic_complexity("{ return a && b || c ?? d }") == 4

    def test_ternary_but_not_optional_chaining(self):
        """A ternary counts; optional chaining and optional markers do not."""
        assert cyclomatic_complexity("{ return a ? b : c }") == 2
        assert cyclomatic_complexity("{ return a?.b?.c }") == 1

    def test_keywords_in_strings_and_comments_ignored(self):
        """Decision keywords inside literals or comments are not counted."""
        assert cyclomatic_complexity("{ const s = 'if && ||' // while\n return s }") == 1

    def test_regex_quantifiers_are_not_ternaries(self):
        """Lazy and optional quantifiers in a regex add nothing."""
        assert cyclomatic_complexity("{ return /^a+?b*?$/.test(s) }") == 1
        assert cyclomatic_complexity("{ return /colou?r/.test(s) ? 1 : 0 }") == 2


class TestFindCalls:
    """Called names in a masked function body."""

    def test_calls_in_first_call_order(self):
        """Plain and member calls are listed once, in order."""
        body = "{ const r = load(id); this.repo.save(r); load(x); return fmt(r) }"
        assert find_calls(body) == ["load", "save", "fmt"]

    def test_keywords_constructors_and_declarations_skipped(self):
        """Control keywords, new and nested declarations are not calls."""
        body = "{ if (a) { return (b) } const m = new Map(); function inner() {} while (c) {} }"
        assert find_calls(body) == []


class TestBracesAndLines:
    """Brace matching and offset to line mapping."""

    def test_find_matching_brace(self):
        """The outer brace closes at the last character."""
        assert find_matching_brace("{ { } }", 0) == 6
        assert find_matching_brace("{ { } }", 2) == 4

    def test_unbalanced_braces(self):
        """An unclosed brace returns -1."""
        assert find_matching_brace("{ {", 0) == -1

    def test_line_index(self):
        """Offsets map to 1-based line numbers."""
        index = LineIndex("a\nbc\nd")
        assert index.line_of(0) == 1
        assert index.line_of(2) == 2
        assert index.line_of(5) == 3
        assert index.line_count == 3


class TestParseParameters:
    """Parameter lists with TypeScript annotations and defaults."""

    def test_types_defaults_and_optional(self):
        """Types, defaults and optional markers are separated."""
        params = parse_parameters("a: number, b = 2, c?: string")
        assert [p.name for p in params] == ["a", "b", "c"]
        assert params[0].type == "number"
        assert not params[0].optional
        assert params[1].default_value == "2"
        assert params[1].optional
        assert params[2].optional
        assert params[2].type == "string"

    def test_function_type_with_default(self):
        """Arrows and nested parentheses in a type do not split the parameter."""
        params = parse_parameters("cb: (x: number) => void = noop")
        assert len(params) == 1
        assert params[0].name == "cb"
        assert params[0].type == "(x: number) => void"
        assert params[0].default_value == "noop"

    def test_generic_and_object_types(self):
        """Commas inside generics and object types stay in the type."""
        params = parse_parameters("m: Map<string, number>, o: { a: 1, b: 2 }")
        assert [p.name for p in params] == ["m", "o"]
        assert params[0].type == "Map<string, number>"

    def test_access_modifiers_and_this(self):
        """Constructor parameter properties drop modifiers; this is skipped."""
        params = parse_parameters("this: Window, private readonly repo: Repo")
        assert [p.name for p in params] == ["repo"]

    def test_empty(self):
        """An empty list yields no parameters."""
        assert parse_parameters("   ") == []
