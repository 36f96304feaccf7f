"""Tests for the positional sink."""

import io
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from rangefetch import partition
from rangefetch.io.local import LocalOutputTarget
from rangefetch.io.sink import SectionExhaustedError, SectionWriter


class AppendOnlyStream:
    """Write-only stream with no seek support."""

    def __init__(self):
        self.chunks = []

    def write(self, data):
        self.chunks.append(bytes(data))
        return len(data)

    def seekable(self):
        return False


class TestSectionWriter:
    """Test SectionWriter clipping and exhaustion."""

    def test_clips_to_window(self):
        """A 15-byte write into a 10-byte window writes 10 bytes without error."""
        buf = io.BytesIO()
        target = LocalOutputTarget(buf)
        target.allocate(20)
        sink = SectionWriter(target, 5, 10)

        assert sink.write(b"abcdefghijklmno") == 10
        assert sink.offset == 10
        assert sink.remaining == 0
        assert buf.getvalue() == b"\x00" * 5 + b"abcdefghij" + b"\x00" * 5

    def test_exhausted_window_raises(self):
        """Once full, any write fails with 'section exhausted' and writes nothing."""
        buf = io.BytesIO()
        target = LocalOutputTarget(buf)
        target.allocate(10)
        sink = SectionWriter(target, 0, 10)
        sink.write(b"x" * 15)

        with pytest.raises(SectionExhaustedError, match="section exhausted"):
            sink.write(b"y")
        assert sink.offset == 10
        assert buf.getvalue() == b"x" * 10

    def test_cursor_advances(self):
        """Consecutive writes land one after another inside the window."""
        buf = io.BytesIO()
        target = LocalOutputTarget(buf)
        target.allocate(8)
        sink = SectionWriter(target, 2, 6)

        assert sink.write(b"abc") == 3
        assert sink.write(b"def") == 3
        assert buf.getvalue() == b"\x00\x00abcdef"

    def test_unbounded_window(self):
        """size=None never clips."""
        buf = io.BytesIO()
        sink = SectionWriter(LocalOutputTarget(buf), 0, None)

        sink.write(b"a" * 100)
        sink.write(b"b" * 100)
        assert sink.remaining is None
        assert buf.getvalue() == b"a" * 100 + b"b" * 100

    def test_non_addressable_target_appends(self):
        """Without positional writes the sink appends in call order."""
        stream = AppendOnlyStream()
        target = LocalOutputTarget(stream)
        assert target.addressable is False

        first = SectionWriter(target, 0, 4)
        second = SectionWriter(target, 4, 4)
        first.write(b"0123")
        second.write(b"4567")

        assert b"".join(stream.chunks) == b"01234567"
        assert target.size == 8


class TestConcurrentSections:
    """Disjoint sections written concurrently reassemble in offset order."""

    @pytest.mark.parametrize("use_file", [True, False])
    def test_random_completion_order(self, tmp_path, use_file):
        """Patterns written by racing threads end up concatenated by offset."""
        total_size = 4099
        expected = bytes(random.Random(1).getrandbits(8) for _ in range(total_size))
        intervals = partition(total_size, 8)

        if use_file:
            target = LocalOutputTarget(tmp_path / "out.bin")
        else:
            target = LocalOutputTarget(io.BytesIO())
        target.allocate(total_size)

        delays = [random.Random(i).random() / 50 for i in range(len(intervals))]
        barrier = threading.Barrier(len(intervals))

        def write_section(i):
            iv = intervals[i]
            sink = SectionWriter(target, iv.start, iv.length)
            payload = expected[iv.start:iv.end + 1]
            barrier.wait()
            for pos in range(0, len(payload), 97):
                time.sleep(delays[i] / 10)
                sink.write(payload[pos:pos + 97])
            return sink.offset

        with ThreadPoolExecutor(max_workers=len(intervals)) as pool:
            written = list(pool.map(write_section, range(len(intervals))))

        assert written == [iv.length for iv in intervals]
        assert target.size == total_size
        if use_file:
            target.close()
            assert (tmp_path / "out.bin").read_bytes() == expected
        else:
            assert target._file.getvalue() == expected
