import pytest

from bfvm import Category, CompiledSource, Diagnostics, InstructionSource, Intent, Location


def _source(data: bytes):
    diags = Diagnostics(echo=False)
    return InstructionSource.from_bytes(data, diags), diags


def test_decodes_the_eight_operators_in_order():
    src, diags = _source(b"><+-.,[]")
    assert list(src) == [
        Intent.MOVE_POINTER_RIGHT,
        Intent.MOVE_POINTER_LEFT,
        Intent.INCREMENT_CELL,
        Intent.DECREMENT_CELL,
        Intent.OUTPUT_CELL,
        Intent.INPUT_CELL,
        Intent.LOOP_START,
        Intent.LOOP_END,
    ]
    assert src.next() is Intent.END_OF_FILE
    assert len(diags.records) == 0


def test_whitespace_is_skipped_silently():
    src, diags = _source(b" +\t\r\n -  \n")
    assert list(src) == [Intent.INCREMENT_CELL, Intent.DECREMENT_CELL]
    assert len(diags.records) == 0


def test_empty_program_is_end_of_file():
    src, _ = _source(b"")
    assert src.next() is Intent.END_OF_FILE


def test_hash_is_reported_as_unsupported_comment_and_skipped():
    src, diags = _source(b"+#+")
    assert list(src) == [Intent.INCREMENT_CELL, Intent.INCREMENT_CELL]
    (diag,) = diags.records
    assert diag.category is Category.DECODE
    assert "comments are not supported" in diag.message
    assert diag.location == Location(1, 2)


def test_unknown_byte_is_reported_with_line_and_column():
    src, diags = _source(b"+\n a-")
    assert list(src) == [Intent.INCREMENT_CELL, Intent.DECREMENT_CELL]
    (diag,) = diags.records
    assert "unsupported operator 'a'" in diag.message
    assert diag.location == Location(2, 2)
    assert diag.format() == "error L2 C2: unsupported operator 'a'"


def test_line_and_column_tracking_ignores_carriage_returns():
    src, _ = _source(b"++\r\n\r\n  >")
    src.next()
    assert src.location == Location(1, 1)
    src.next()
    assert src.location == Location(1, 2)
    assert src.next() is Intent.MOVE_POINTER_RIGHT
    assert src.location == Location(3, 3)
    assert src.current_char == ">"


def test_seek_rewinds_to_a_saved_position_and_location():
    src, _ = _source(b"+[\n-]")
    src.next()
    src.next()
    saved, loc = src.position(), src.location
    assert (saved, loc) == (2, Location(1, 2))
    assert list(src) == [Intent.DECREMENT_CELL, Intent.LOOP_END]
    assert src.location == Location(2, 2)

    src.seek(saved, loc)
    assert src.location == Location(1, 2)
    assert src.next() is Intent.DECREMENT_CELL
    assert src.location == Location(2, 1)


def test_unopened_source_reports_precondition_and_acts_as_end_of_file(tmp_path):
    diags = Diagnostics(echo=False)
    src = InstructionSource.from_path(str(tmp_path / "never-opened.bf"), diags)
    assert not src.is_open
    assert src.next() is Intent.END_OF_FILE
    (diag,) = diags.records
    assert diag.category is Category.PRECONDITION


def test_path_source_reads_file_once_opened(tmp_path):
    path = tmp_path / "prog.bf"
    path.write_bytes(b"+>")
    with InstructionSource.from_path(str(path), Diagnostics(echo=False)) as src:
        assert src.is_open
        assert list(src) == [Intent.INCREMENT_CELL, Intent.MOVE_POINTER_RIGHT]
    assert not src.is_open


class TestCompiledSource:
    def test_balanced_matches_pair_nested_brackets(self):
        compiled = CompiledSource.from_bytes(b"[[]]", Diagnostics(echo=False))
        assert compiled.matches == {0: 3, 1: 2}
        # position just after the outer '[' -> just after the outer ']'
        assert compiled.matching_end(1) == 4
        assert compiled.matching_end(2) == 3

    def test_legacy_matches_pair_each_open_with_next_close(self):
        compiled = CompiledSource.from_bytes(b"[[]]", Diagnostics(echo=False), legacy=True)
        assert compiled.matches == {0: 2, 1: 2}

    def test_unclosed_bracket_has_no_match(self):
        compiled = CompiledSource.from_bytes(b"+[", Diagnostics(echo=False))
        assert compiled.matching_end(2) is None

    def test_decode_errors_are_reported_once_at_compile_time(self):
        diags = Diagnostics(echo=False)
        compiled = CompiledSource.from_bytes(b"+x+", diags)
        assert len(diags.records) == 1
        assert compiled.intents == [Intent.INCREMENT_CELL, Intent.INCREMENT_CELL]
        assert compiled.locations == [Location(1, 1), Location(1, 3)]

    def test_next_and_seek_walk_instruction_indices(self):
        compiled = CompiledSource.from_bytes(b"+\n[-]", Diagnostics(echo=False))
        assert compiled.next() is Intent.INCREMENT_CELL
        assert compiled.next() is Intent.LOOP_START
        assert compiled.location == Location(2, 1)
        assert compiled.position() == 2
        compiled.seek(4)
        assert compiled.location == Location(2, 3)
        assert compiled.next() is Intent.END_OF_FILE
        compiled.seek(2, Location(2, 1))
        assert compiled.next() is Intent.DECREMENT_CELL


@pytest.mark.parametrize("byte", [b"!", b"0", b"\x00", b"/"])
def test_any_other_byte_is_a_decode_error(byte):
    src, diags = _source(byte)
    assert src.next() is Intent.END_OF_FILE
    assert [d.category for d in diags.records] == [Category.DECODE]
