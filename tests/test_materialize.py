"""Tests for idempotent artifact writing."""

import threading

import pytest

from py_gen.errors import MaterializeError
from py_gen.materialize import FileMaterializer


def test_write_creates_parents(tmp_path):
    materializer = FileMaterializer()
    path = tmp_path / 'a' / 'b' / 'out.txt'
    assert materializer.write_if_different(str(path), 'hello\n')
    assert path.read_text() == 'hello\n'
    assert materializer.written == [str(path)]


def test_unchanged_content_is_not_rewritten(tmp_path):
    """Test that a second identical write leaves the file alone."""
    path = tmp_path / 'out.txt'
    materializer = FileMaterializer()
    materializer.write_if_different(str(path), 'same')
    mtime = path.stat().st_mtime_ns

    assert not materializer.write_if_different(str(path), 'same')
    assert path.stat().st_mtime_ns == mtime
    assert materializer.skipped == [str(path)]

    assert materializer.write_if_different(str(path), 'changed')
    assert path.read_text() == 'changed'


def test_write_failure_raises(tmp_path):
    blocker = tmp_path / 'file'
    blocker.write_text('')
    with pytest.raises(MaterializeError) as exc_info:
        FileMaterializer().write_if_different(str(blocker / 'out.txt'), 'x')
    assert exc_info.value.path == str(blocker / 'out.txt')


def test_same_path_writers_are_serialized(tmp_path):
    path = str(tmp_path / 'out.txt')
    materializer = FileMaterializer()
    threads = [threading.Thread(target=materializer.write_if_different, args=(path, 'content'))
               for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(materializer.written) == 1
    assert len(materializer.skipped) == 7
