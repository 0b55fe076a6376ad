"""
Tests for the s-expression reader.
"""

import pytest

from lspinstall.core.services.server_install.domain.sexp import (
    NIL,
    DottedList,
    Symbol,
    form_at,
    is_call,
    iter_toplevel,
    plist_get,
    read_all,
    read_form,
)
from lspinstall.core.services.server_install.errors import ResolutionError, SexpSyntaxError


class TestAtoms:
    def test_string_with_escapes(self):
        value, end = read_form(r'"a\"b\n"')
        assert value == 'a"b\n'
        assert end == 8

    def test_string_line_continuation(self):
        value, _ = read_form('"foo\\\nbar"')
        assert value == "foobar"

    def test_numbers(self):
        assert read_all("1 -2 3. 1.5 .5") == [1, -2, 3, 1.5, 0.5]

    def test_symbols_and_keywords(self):
        a, kw = read_all("lsp-foo--bar :server-id")
        assert a == Symbol("lsp-foo--bar")
        assert not a.is_keyword
        assert kw.is_keyword
        assert str(kw) == ":server-id"

    def test_character_literal(self):
        assert read_all("?a ?\\n") == [ord("a"), ord("\n")]

    def test_escaped_symbol_chars(self):
        value, _ = read_form(r"foo\ bar")
        assert value == Symbol("foo bar")


class TestCompound:
    def test_nested_list(self):
        value, _ = read_form('(a (b "c") ())')
        assert value == [Symbol("a"), [Symbol("b"), "c"], []]

    def test_vector_is_tuple(self):
        value, _ = read_form("[1 2]")
        assert value == (1, 2)

    def test_dotted_list(self):
        value, _ = read_form("(a b . c)")
        assert value == DottedList((Symbol("a"), Symbol("b")), Symbol("c"))

    def test_quote_forms(self):
        quoted, fn, bq = read_all("'x #'f `(a ,b ,@c)")
        assert quoted == [Symbol("quote"), Symbol("x")]
        assert fn == [Symbol("function"), Symbol("f")]
        assert bq[0] == Symbol("backquote")
        assert bq[1][1] == [Symbol("comma"), Symbol("b")]
        assert bq[1][2] == [Symbol("comma-at"), Symbol("c")]

    def test_comments_are_skipped(self):
        assert read_all("; heading\n(a) ; trailing\n") == [[Symbol("a")]]


class TestErrors:
    def test_unbalanced(self):
        with pytest.raises(SexpSyntaxError, match="Missing"):
            read_form("(a (b)")

    def test_stray_close(self):
        with pytest.raises(SexpSyntaxError, match="Unbalanced"):
            read_form(")")

    def test_unterminated_string(self):
        with pytest.raises(SexpSyntaxError) as exc:
            read_form('(a "b')
        assert exc.value.offset == 3

    def test_syntax_error_is_resolution_error(self):
        with pytest.raises(ResolutionError):
            read_form("#s(hash)")


class TestTopLevel:
    def test_iter_toplevel_skips_unreadable_forms(self):
        text = "(defvar a 1)\n(broken\n(defvar c 3)\n"
        heads = [form.value[0].name for form in iter_toplevel(text)]
        assert heads == ["defvar", "defvar"]

    def test_iter_toplevel_spans(self):
        text = "(a)\n(b c)\n"
        forms = list(iter_toplevel(text))
        assert [(f.start, f.end) for f in forms] == [(0, 3), (4, 9)]

    def test_form_at(self):
        text = "(a)\n(outer\n  (inner :server-id 'x))\n(z)\n"
        form = form_at(iter_toplevel(text), text.index(":server-id"))
        assert form is not None
        assert form.value[0] == Symbol("outer")

    def test_form_at_ignores_parens_at_line_start_inside_strings(self):
        text = "(outer \"docs\n(see below)\" :server-id 'x)\n"
        form = form_at(iter_toplevel(text), text.index(":server-id"))
        assert form is not None
        assert form.start == 0
        assert form.value[0] == Symbol("outer")

    def test_form_at_outside_any_form(self):
        text = "(a)\n;; comment here\n"
        assert form_at(iter_toplevel(text), text.index("comment")) is None


class TestHelpers:
    def test_is_call(self):
        value, _ = read_form("(lambda () 1)")
        assert is_call(value, "lambda")
        assert is_call(value, "defun", "lambda")
        assert not is_call(value, "defun")
        assert not is_call("lambda", "lambda")
        assert not is_call([], "lambda")

    def test_plist_get(self):
        value, _ = read_form("(make-lsp-client :server-id 'x :priority -1)")
        assert plist_get(value[1:], ":priority") == -1
        assert plist_get(value[1:], ":missing", NIL) == NIL
