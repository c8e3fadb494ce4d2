"""Tests for the address -> source line table."""

import random

from asmlens.extraction.binary_artifact import SourceLocation
from asmlens.extraction.line_info import LineRange, LineRow, LineTable, _build_file_paths


def _rows():
    return [
        LineRow(0x1000, "a.c", 10),
        LineRow(0x1004, "a.c", 11),
        LineRow(0x1008, "b.h", 3),
        LineRow(0x100C, "a.c", 0),
        LineRow(0x1010, None, 0, end_sequence=True),
        LineRow(0x2000, "c.c", 1),
        LineRow(0x2002, None, 0, end_sequence=True),
    ]


def test_resolve_within_rows():
    table = LineTable.from_rows(_rows())

    assert table.resolve(0x1000) == SourceLocation("a.c", 10)
    assert table.resolve(0x1003) == SourceLocation("a.c", 10)
    assert table.resolve(0x1004) == SourceLocation("a.c", 11)
    assert table.resolve(0x100B) == SourceLocation("b.h", 3)
    assert table.resolve(0x2001) == SourceLocation("c.c", 1)


def test_unknown_addresses():
    table = LineTable.from_rows(_rows())

    assert table.resolve(0x0FFF) is None
    # line 0 marks compiler-generated code
    assert table.resolve(0x100C) is None
    # gap between sequences
    assert table.resolve(0x1010) is None
    assert table.resolve(0x1FFF) is None
    assert table.resolve(0x2002) is None


def test_empty_table():
    table = LineTable()
    assert len(table) == 0
    assert table.resolve(0x1000) is None


def test_resolution_is_order_independent():
    table = LineTable.from_rows(_rows())
    addresses = list(range(0x0FF0, 0x2010))
    expected = {addr: table.resolve(addr) for addr in addresses}

    shuffled = addresses[:]
    random.Random(7).shuffle(shuffled)
    for addr in shuffled:
        assert table.resolve(addr) == expected[addr]


def test_repeated_address_uses_last_row():
    rows = [
        LineRow(0x10, "a.c", 5),
        LineRow(0x10, "a.c", 6),
        LineRow(0x14, None, 0, end_sequence=True),
    ]
    table = LineTable.from_rows(rows)
    assert table.resolve(0x10) == SourceLocation("a.c", 6)


def test_unterminated_sequence_drops_last_row():
    table = LineTable.from_rows([LineRow(0x10, "a.c", 1), LineRow(0x12, "a.c", 2)])
    assert table.resolve(0x11) == SourceLocation("a.c", 1)
    assert table.resolve(0x12) is None


def test_overlapping_ranges_keep_first_writer():
    table = LineTable(
        [
            LineRange(0x10, 0x20, SourceLocation("first.c", 1)),
            LineRange(0x18, 0x28, SourceLocation("second.c", 2)),
        ]
    )
    assert table.resolve(0x1F) == SourceLocation("first.c", 1)
    assert table.resolve(0x20) == SourceLocation("second.c", 2)
    assert table.resolve(0x27) == SourceLocation("second.c", 2)
    assert table.resolve(0x28) is None


class _Attr:
    def __init__(self, value):
        self.value = value


class _DIE:
    def __init__(self, comp_dir):
        self.attributes = {"DW_AT_comp_dir": _Attr(comp_dir)} if comp_dir else {}


class _CU:
    def __init__(self, comp_dir):
        self._die = _DIE(comp_dir)

    def get_top_DIE(self):
        return self._die


class _FileEntry:
    def __init__(self, name, dir_index):
        self.name = name
        self.dir_index = dir_index


def test_file_paths_dwarf4():
    header = {
        "version": 4,
        "include_directory": [b"/usr/include", b"sub"],
        "file_entry": [
            _FileEntry(b"main.c", 0),
            _FileEntry(b"stdio.h", 1),
            _FileEntry(b"util.h", 2),
            _FileEntry(b"/abs/gen.c", 0),
        ],
    }
    paths = _build_file_paths(header, _CU(b"/work"))
    assert paths == {
        1: "/work/main.c",
        2: "/usr/include/stdio.h",
        3: "/work/sub/util.h",
        4: "/abs/gen.c",
    }


def test_file_paths_dwarf5():
    header = {
        "version": 5,
        "include_directory": [b"/work", b"/usr/include"],
        "file_entry": [
            _FileEntry(b"main.c", 0),
            _FileEntry(b"main.c", 0),
            _FileEntry(b"stdio.h", 1),
        ],
    }
    paths = _build_file_paths(header, _CU(b"/work"))
    assert paths == {0: "/work/main.c", 1: "/work/main.c", 2: "/usr/include/stdio.h"}


def test_file_paths_windows_absolute():
    header = {
        "version": 4,
        "include_directory": [],
        "file_entry": [_FileEntry(b"C:/go/src/main.go", 0)],
    }
    assert _build_file_paths(header, _CU(b"C:/build")) == {1: "C:/go/src/main.go"}
