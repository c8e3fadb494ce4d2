"""Tests for source file caching and line windows."""

from asmlens.extraction.source_cache import SourceCache


def test_window_centered(source_file):
    cache = SourceCache()
    window = cache.window(str(source_file), 10, 2)

    assert window.first_line == 8
    assert window.lines == ("line 8", "line 9", "line 10", "line 11", "line 12")
    assert window.contains(10)


def test_window_clipped_at_start(source_file):
    window = SourceCache().window(str(source_file), 1, 3)
    assert window.first_line == 1
    assert window.lines == ("line 1", "line 2", "line 3", "line 4")


def test_window_clipped_at_end(source_file):
    window = SourceCache().window(str(source_file), 20, 3)
    assert window.first_line == 17
    assert window.last_line == 20
    assert len(window.lines) == 4


def test_zero_context(source_file):
    window = SourceCache().window(str(source_file), 5, 0)
    assert window.lines == ("line 5",)


def test_line_outside_file(source_file):
    cache = SourceCache()
    assert cache.window(str(source_file), 21, 1) is None
    assert cache.window(str(source_file), 0, 1) is None


def test_missing_file(tmp_path):
    cache = SourceCache()
    assert cache.lines(str(tmp_path / "nope.c")) is None
    assert cache.window(str(tmp_path / "nope.c"), 1, 3) is None


def test_directory_is_unreadable(tmp_path):
    assert SourceCache().lines(str(tmp_path)) is None


def test_file_read_once(source_file):
    cache = SourceCache()
    first = cache.lines(str(source_file))
    source_file.write_text("changed\n")
    assert cache.lines(str(source_file)) is first
    assert cache.window(str(source_file), 1, 0).lines == ("line 1",)


def test_crlf_and_missing_trailing_newline(tmp_path):
    path = tmp_path / "win.c"
    path.write_bytes(b"a\r\nb\r\nc")
    assert SourceCache().lines(str(path)) == ("a", "b", "c")


def test_invalid_utf8_is_replaced(tmp_path):
    path = tmp_path / "latin.c"
    path.write_bytes(b"caf\xe9\n")
    (line,) = SourceCache().lines(str(path))
    assert line.startswith("caf")


def test_source_roots_remap_missing_paths(tmp_path, source_file):
    cache = SourceCache(roots=[tmp_path])
    window = cache.window("/build/machine/prog.c", 3, 0)
    assert window is not None
    assert window.lines == ("line 3",)
    assert window.file == "/build/machine/prog.c"


def test_source_roots_windows_path(tmp_path, source_file):
    cache = SourceCache(roots=[tmp_path])
    assert cache.lines("C:\\src\\prog.c") is not None
