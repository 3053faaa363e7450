import pytest

from core.loop import TraceRecord
from utils.trace_io import (TextTraceWriter, TextTraceReader, BinaryTraceWriter, BinaryTraceReader, TEXT_HEADER,
                            get_writer, get_reader)

RECORDS = [TraceRecord(1, 0, [2], 3), TraceRecord(2, 1, [0, 1], 0), TraceRecord(3, 4, [7], 12)]


@pytest.mark.parametrize('binary', [False, True])
class TestTraceFormats:
    def test_round_trip(self, tmp_path, binary):
        path = str(tmp_path / 'trace')
        with get_writer(path, binary) as writer:
            for record in RECORDS:
                writer.write(record)
        assert get_reader(path, binary).read() == RECORDS

    def test_read_pairs(self, tmp_path, binary):
        path = str(tmp_path / 'trace')
        with get_writer(path, binary) as writer:
            for record in RECORDS:
                writer.write(record)
        assert get_reader(path, binary).read_pairs() == [(0, 2), (1, 0), (1, 1), (4, 7)]

    def test_append(self, tmp_path, binary):
        path = str(tmp_path / 'trace')
        with get_writer(path, binary).open() as writer:
            writer.write(RECORDS[0])
        with get_writer(path, binary).open(append=True) as writer:
            writer.write(RECORDS[1])
        assert get_reader(path, binary).read() == RECORDS[:2]

    def test_open_twice(self, tmp_path, binary):
        writer = get_writer(str(tmp_path / 'trace'), binary)
        writer.open()
        with pytest.raises(IOError):
            writer.open()
        writer.close()

    def test_write_without_open(self, tmp_path, binary):
        writer = get_writer(str(tmp_path / 'trace'), binary)
        with pytest.raises(IOError):
            writer.write(RECORDS[0])


class TestTextTrace:
    def test_layout(self, tmp_path):
        path = tmp_path / 'trace.txt'
        with TextTraceWriter(str(path)) as writer:
            writer.write(RECORDS[1])
        assert path.read_text().split('\n') == [TEXT_HEADER, '2\t1\t0\t0', '2\t1\t1\t0']

    def test_bad_header(self, tmp_path):
        path = tmp_path / 'trace.txt'
        path.write_text('iter\tuser\n1\t0\t2\t3\n')
        with pytest.raises(ValueError):
            TextTraceReader(str(path)).read()

    def test_malformed_line(self, tmp_path):
        path = tmp_path / 'trace.txt'
        path.write_text(TEXT_HEADER + '\n1\t0\n')
        with pytest.raises(ValueError):
            TextTraceReader(str(path)).read()


class TestBinaryTrace:
    def test_truncated_block_is_dropped(self, tmp_path):
        path = tmp_path / 'trace.bin'
        with BinaryTraceWriter(str(path)) as writer:
            for record in RECORDS[:2]:
                writer.write(record)
        data = path.read_bytes()
        path.write_bytes(data[:-3])
        assert BinaryTraceReader(str(path)).read() == RECORDS[:1]

    def test_block_size(self, tmp_path):
        path = tmp_path / 'trace.bin'
        with BinaryTraceWriter(str(path)) as writer:
            writer.write(RECORDS[1])
        # 3 x int32 head + 2 x int32 items + int64 time
        assert len(path.read_bytes()) == 12 + 8 + 8
