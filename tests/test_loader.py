"""Unit tests for the script loader."""

import pytest

from protocom.protocol.checksum import fingerprint
from protocom.script.command import CommandKind
from protocom.script.loader import (
    ENTRY_ROUTINE,
    load_script_file,
    parse_commands,
    parse_script,
    split_routines,
)
from protocom.storage.file_store import LocalFileStore
from protocom.utils.exceptions import FileError, FormatError, IntegrityError


def test_comments_and_blank_lines_skipped():
    routines = parse_script(["# header", "", "   ", "  # indented comment", "V"])
    assert list(routines) == [ENTRY_ROUTINE]
    assert [c.raw for c in routines[ENTRY_ROUTINE]] == ["V"]


def test_routines_split_at_markers():
    routines = parse_script(["V", ": setup", "S", "G speed", ": empty"])
    assert set(routines) == {"", "setup", "empty"}
    assert [c.raw for c in routines[""]] == ["V"]
    assert [c.raw for c in routines["setup"]] == ["S", "G speed"]
    assert routines["empty"] == []


def test_leading_marker_leaves_entry_routine_empty():
    routines = parse_script([": loop", "J : loop"])
    assert routines[ENTRY_ROUTINE] == []
    assert [c.kind for c in routines["loop"]] == [CommandKind.JUMP]


def test_marker_without_name_rejected():
    with pytest.raises(FormatError):
        parse_script(["V", ":"])
    with pytest.raises(FormatError):
        parse_script(["V", ":   "])


def test_duplicate_routine_rejected():
    with pytest.raises(FormatError):
        parse_script([": a", "V", ": a"])


def test_binary_line_payload_taken_from_offset_two():
    routines = parse_script(["D AB\x01c"])
    command = routines[ENTRY_ROUTINE][0]
    assert command.kind is CommandKind.BINARY
    assert command.payload == b"AB\x01c"
    assert command.parameters == ()


def test_binary_line_keeps_trailing_spaces():
    command = parse_commands(["D x  "])[0]
    assert command.payload == b"x  "


def test_non_ascii_binary_line_rejected():
    with pytest.raises(FormatError):
        parse_script(["D café"])


def test_indented_command_is_parsed_from_its_tag():
    command = parse_commands(["    M hello"])[0]
    assert command.kind is CommandKind.MESSAGE
    assert command.text == "hello"


def test_fingerprint_marker_verified_against_all_prior_lines():
    body = ["# signed script", "", "V", "M ok"]
    lines = body + [f"O {fingerprint(body)}", "S"]
    routines = parse_script(lines)
    assert [c.raw for c in routines[ENTRY_ROUTINE]] == ["V", "M ok", "S"]


def test_fingerprint_marker_may_carry_annotation():
    body = ["V"]
    routines = parse_script(body + [f"O {fingerprint(body)}  (release 3)"])
    assert len(routines[ENTRY_ROUTINE]) == 1


def test_fingerprint_mismatch_aborts():
    body = ["V", "M ok"]
    tampered = ["V", "M changed"] + [f"O {fingerprint(body)}"]
    with pytest.raises(IntegrityError):
        parse_script(tampered)


def test_fingerprint_ignores_line_terminators():
    body = ["V\r\n", "S\n"]
    assert parse_script(body + [f"O {fingerprint(['V', 'S'])}"])


def test_split_routines_directly():
    routines = split_routines(parse_commands(["A", ": b", "B"]))
    assert [c.raw for c in routines["b"]] == ["B"]


def test_load_script_file(tmp_path):
    (tmp_path / "demo.p1s").write_text("V\n: r\nS\n", encoding="utf-8")
    routines = load_script_file("demo.p1s", LocalFileStore(str(tmp_path)))
    assert set(routines) == {"", "r"}


def test_load_missing_script_file(tmp_path):
    with pytest.raises(FileError):
        load_script_file("missing.p1s", LocalFileStore(str(tmp_path)))
