import pytest
from vmparse.parser import clean_lines, load, load_file
from vmparse.ast import SourceLine
from vmparse.errors import SourceIOError


@pytest.mark.parametrize("raw, expected", [
    (["push constant 7"], ["push constant 7"]),
    (["  push constant 7  \r"], ["push constant 7"]),
    (["\tadd\t"], ["add"]),
    (["// header comment", "add"], ["add"]),
    (["   // indented comment"], []),
    (["", "   ", "\r"], []),
    (["push constant 1 // inline stays"], ["push constant 1 // inline stays"]),
    (["/ not a comment"], ["/ not a comment"]),
])
def test_clean_lines(raw, expected):
    assert clean_lines(raw) == expected


def test_cleaning_is_idempotent():
    raw = ["// c", "", "  push local 0 ", "add\r", "   ", "\tneg"]
    once = clean_lines(raw)
    assert clean_lines(once) == once


def test_load_keeps_order_and_line_numbers():
    text = "// Simple add\r\npush constant 7\r\n\r\npush constant 8\r\nadd\r\n"
    lines = load(text)
    assert lines == [
        SourceLine("push constant 7", 2),
        SourceLine("push constant 8", 4),
        SourceLine("add", 5),
    ]


def test_comment_only_line_is_dropped():
    lines = load("//push constant 3 is commented out\npush constant 4\n")
    assert [s.text for s in lines] == ["push constant 4"]


def test_load_file(tmp_path):
    src = tmp_path / "Prog.vm"
    src.write_text("// x\npush constant 1\n", encoding="utf-8")
    assert load_file(src) == [SourceLine("push constant 1", 2)]


def test_load_file_small_buffer(tmp_path):
    src = tmp_path / "Prog.vm"
    src.write_text("push constant 10\npush constant 20\nadd\n", encoding="utf-8")
    assert [s.text for s in load_file(src, buf_size=3)] == [
        "push constant 10", "push constant 20", "add",
    ]


def test_load_file_missing(tmp_path):
    with pytest.raises(SourceIOError) as ei:
        load_file(tmp_path / "nope.vm")
    assert "nope.vm" in str(ei.value)
