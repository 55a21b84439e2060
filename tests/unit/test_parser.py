import pytest
from vmparse.parser import Parser, parse_text, tokenize
from vmparse.ast import Category, SourceLine
from vmparse.errors import (
    UnknownCommandError, UnexpectedEndError, MalformedInstructionError, NotANumberError,
)


def _at(text: str) -> Parser:
    return Parser([SourceLine(text, 1)])


# --- tokenize ---
@pytest.mark.parametrize("src, words", [
    ("push constant 7", ["push", "constant", "7"]),
    ("push\tlocal   2", ["push", "local", "2"]),
    ("add", ["add"]),
    ("if-goto LOOP", ["if-goto", "LOOP"]),
    ("push constant 7 // trailing", ["push", "constant", "7", "//", "trailing"]),
])
def test_tokenize(src, words):
    assert tokenize(SourceLine(src, 1)) == words


# --- currentCategory ---
@pytest.mark.parametrize("src, category", [
    ("push constant 1", Category.PUSH),
    ("pop local 0", Category.POP),
    ("add", Category.ARITHMETIC),
    ("sub", Category.ARITHMETIC),
    ("neg", Category.ARITHMETIC),
    ("eq", Category.ARITHMETIC),
    ("lt", Category.ARITHMETIC),
    ("gt", Category.ARITHMETIC),
    ("and", Category.ARITHMETIC),
    ("or", Category.ARITHMETIC),
    ("not", Category.ARITHMETIC),
    ("label LOOP", Category.LABEL),
    ("goto LOOP", Category.GOTO),
    ("if-goto LOOP", Category.IF_GOTO),
    ("function Main.main 2", Category.FUNCTION),
    ("call Math.add 2", Category.CALL),
    ("return", Category.RETURN),
])
def test_current_category(src, category):
    assert _at(src).current_category() is category


def test_unknown_command_reports_line():
    p = Parser([SourceLine("push constant 1", 3), SourceLine("mul", 4)])
    p.advance()
    with pytest.raises(UnknownCommandError) as ei:
        p.current_category()
    assert ei.value.line == 4
    assert ei.value.text == "mul"
    assert "line 4" in str(ei.value)


def test_category_is_case_sensitive():
    with pytest.raises(UnknownCommandError):
        _at("PUSH constant 1").current_category()


def test_unexpected_end():
    p = Parser([])
    assert not p.has_next()
    with pytest.raises(UnexpectedEndError):
        p.current_category()


# --- currentSegment / currentIndex ---
def test_arithmetic_segment_is_whole_line():
    assert _at("add").current_segment() == "add"


@pytest.mark.parametrize("src, segment, index", [
    ("push constant 7", "constant", 7),
    ("pop  local\t3", "local", 3),
    ("push static 0", "static", 0),
    ("push constant 7 extra words", "constant", 7),
    ("push constant +5", "constant", 5),
    ("push constant 007", "constant", 7),
])
def test_segment_and_index(src, segment, index):
    p = _at(src)
    assert p.current_segment() == segment
    assert p.current_index() == index


def test_segment_missing():
    with pytest.raises(MalformedInstructionError):
        _at("push").current_segment()


def test_index_missing():
    with pytest.raises(MalformedInstructionError):
        _at("push constant").current_index()


@pytest.mark.parametrize("tok", ["x", "7a", "1_000", "0x10", "3.5"])
def test_index_not_a_number(tok):
    with pytest.raises(NotANumberError) as ei:
        _at(f"push constant {tok}").current_index()
    assert tok in str(ei.value)


# --- cursor ---
def test_cursor_walk_and_advance_past_end():
    p = Parser.from_text("push constant 1\n// c\nadd\n")
    seen = []
    while p.has_next():
        seen.append(p.current_line.text)
        p.advance()
    assert seen == ["push constant 1", "add"]
    p.advance()
    assert not p.has_next()
    assert p.current_line is None


def test_current_instruction_fields():
    p = Parser.from_text("push argument 2\nneg\ngoto END\n")
    push = p.current_instruction()
    assert (push.category, push.arg1, push.index) == (Category.PUSH, "argument", 2)
    p.advance()
    neg = p.current_instruction()
    assert (neg.category, neg.arg1, neg.index) == (Category.ARITHMETIC, "neg", None)
    p.advance()
    goto = p.current_instruction()
    assert goto.category is Category.GOTO and goto.arg1 is None
    assert goto.text == "goto END"


# --- parse_text ---
def test_parse_text_ok():
    res = parse_text("push constant 7\npush constant 8\nadd\n")
    assert not res.errors
    assert [i.category for i in res.instructions] == [Category.PUSH, Category.PUSH, Category.ARITHMETIC]


def test_parse_text_stops_at_first_error():
    res = parse_text("push constant 7\npush constant x\nfoo\n")
    assert len(res.instructions) == 1
    assert len(res.errors) == 1
    err = res.errors[0]
    assert err.line == 2
    assert "not a base-10 integer" in err.message


# --- error columns ---
@pytest.mark.parametrize("raw, column", [
    ("push constant x", 15),
    ("  push constant x", 17),
    ("\tpush\tconstant\t12a", 16),
])
def test_not_a_number_column(raw, column):
    p = Parser.from_text(raw)
    with pytest.raises(NotANumberError) as ei:
        p.current_index()
    assert ei.value.column == column
    assert f"col {column}" in str(ei.value)


def test_unknown_command_column_follows_indent():
    p = Parser.from_text("   mul")
    with pytest.raises(UnknownCommandError) as ei:
        p.current_category()
    assert ei.value.column == 4


def test_missing_field_points_past_line_end():
    p = Parser.from_text("pop")
    with pytest.raises(MalformedInstructionError) as ei:
        p.current_segment()
    assert ei.value.column == 4


def test_parse_text_carries_column():
    res = parse_text("add\n  foo bar\n")
    assert (res.errors[0].line, res.errors[0].column) == (2, 3)
