"""Write and read the trace of a simulation: one record per iteration with the
target user, the recommended items and the recommendation time.

Text format (tab separated, one line per recommended item):

    numIter	uidx	iidx	time
    1	4	17	0
    2	9	3	1

Binary format (big endian, one block per iteration):

    int32 iteration | int32 uidx | int32 count | count x int32 iidx | int64 time
"""

import logging
import os
import struct

from core.loop import TraceRecord

logger = logging.getLogger(__name__)

TEXT_HEADER = 'numIter\tuidx\tiidx\ttime'
HEAD_STRUCT = struct.Struct('>iii')
TIME_STRUCT = struct.Struct('>q')


class TraceWriter(object):
    mode = 'w'

    def __init__(self, path):
        self.path = path
        self.file = None

    def open(self, append=False):
        if self.file is not None:
            raise IOError('Trace writer for {} is already open'.format(self.path))
        exists = append and os.path.exists(self.path) and os.path.getsize(self.path) > 0
        self.file = self._open(append)
        if not exists:
            self.write_header()
        return self

    def _open(self, append):
        raise NotImplementedError

    def write_header(self):
        pass

    def write(self, record):
        if self.file is None:
            raise IOError('Trace writer for {} is not open'.format(self.path))
        self._write(record)

    def _write(self, record):
        raise NotImplementedError

    def flush(self):
        if self.file is not None:
            self.file.flush()

    def close(self):
        if self.file is not None:
            self.file.close()
            self.file = None

    def __enter__(self):
        if self.file is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class TextTraceWriter(TraceWriter):
    def _open(self, append):
        return open(self.path, 'a' if append else 'w')

    def write_header(self):
        self.file.write(TEXT_HEADER)

    def _write(self, record):
        for iidx in record.items:
            self.file.write('\n{}\t{}\t{}\t{}'.format(record.iteration, record.uidx, iidx, record.time))


class BinaryTraceWriter(TraceWriter):
    def _open(self, append):
        return open(self.path, 'ab' if append else 'wb')

    def _write(self, record):
        items = list(record.items)
        self.file.write(HEAD_STRUCT.pack(record.iteration, record.uidx, len(items)))
        self.file.write(struct.pack('>{}i'.format(len(items)), *items))
        self.file.write(TIME_STRUCT.pack(record.time))


class TraceReader(object):
    def __init__(self, path):
        self.path = path

    def read(self):
        """Return: list of TraceRecord. """
        return list(self.records())

    def records(self):
        raise NotImplementedError

    def read_pairs(self):
        """Return: list of (uidx, iidx) recommended, in order. """
        return [(record.uidx, iidx) for record in self.records() for iidx in record.items]


class TextTraceReader(TraceReader):
    def records(self):
        current = None
        with open(self.path, 'r') as f:
            header = f.readline()
            if header.strip() and header.strip() != TEXT_HEADER:
                raise ValueError('Unexpected trace header in {}: {}'.format(self.path, header.strip()))
            for line in f:
                line = line.strip()
                if not line:
                    continue
                fields = line.split('\t')
                if len(fields) < 4:
                    raise ValueError('Malformed trace line in {}: {}'.format(self.path, line))
                iteration, uidx, iidx, elapsed = (int(x) for x in fields[:4])
                if current is not None and current.iteration == iteration:
                    current.items.append(iidx)
                    continue
                if current is not None:
                    yield current
                current = TraceRecord(iteration, uidx, [iidx], elapsed)
        if current is not None:
            yield current


class BinaryTraceReader(TraceReader):
    def records(self):
        with open(self.path, 'rb') as f:
            while True:
                head = f.read(HEAD_STRUCT.size)
                if len(head) < HEAD_STRUCT.size:
                    if head:
                        logger.warning('Truncated trace block at the end of %s', self.path)
                    return
                iteration, uidx, count = HEAD_STRUCT.unpack(head)
                body = f.read(4 * count + TIME_STRUCT.size)
                if len(body) < 4 * count + TIME_STRUCT.size:
                    logger.warning('Truncated trace block at the end of %s', self.path)
                    return
                items = list(struct.unpack('>{}i'.format(count), body[:4 * count]))
                elapsed, = TIME_STRUCT.unpack(body[4 * count:])
                yield TraceRecord(iteration, uidx, items, elapsed)


def get_writer(path, binary=False):
    return BinaryTraceWriter(path) if binary else TextTraceWriter(path)


def get_reader(path, binary=False):
    return BinaryTraceReader(path) if binary else TextTraceReader(path)
