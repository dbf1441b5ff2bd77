import gzip
import logging

import pytest

from drrip.trace.formats import BinaryAccessFormat, MemoryAccess, SimpleTextFormat
from drrip.trace.parser import (
    AccessTrace,
    TraceParser,
    create_sample_trace,
    generate_accesses,
)


TEXT_TRACE = """\
# comment
0x1000 R 0x400100
0x1040 W

4096
not_an_address R
"""


def test_simple_text_format(tmp_path):
    path = tmp_path / "small.trace"
    path.write_text(TEXT_TRACE)

    records = list(TraceParser().parse_file(path))
    assert records == [
        MemoryAccess(address=0x1000, is_write=False, pc=0x400100),
        MemoryAccess(address=0x1040, is_write=True),
        MemoryAccess(address=4096, is_write=False),
    ]


def test_max_and_skip(tmp_path):
    path = tmp_path / "small.trace"
    path.write_text(TEXT_TRACE)

    records = list(TraceParser().parse_file(path, max_accesses=1,
                                            skip_accesses=1))
    assert [r.address for r in records] == [0x1040]


def test_gzip_text(tmp_path):
    path = tmp_path / "small.trace.gz"
    with gzip.open(path, 'wt') as f:
        f.write(TEXT_TRACE)

    parser = TraceParser()
    assert len(parser.load_trace(path)) == 3
    info = parser.get_trace_info(path)
    assert info.compression == 'gz'
    assert info.format == 'text'


def test_binary_sample_trace(tmp_path):
    path = create_sample_trace(tmp_path / "loop.bin", num_accesses=200,
                               pattern='loop', working_set=50)
    trace = TraceParser().load_trace(path)

    expected = generate_accesses(200, 'loop', working_set=50)
    assert [r.address for r in trace] == [r.address for r in expected]
    assert [r.is_write for r in trace] == [r.is_write for r in expected]
    assert TraceParser().get_trace_info(path).format == 'binary'


def test_binary_pack():
    data = BinaryAccessFormat.pack(MemoryAccess(address=0x40, is_write=True))
    assert len(data) == 9
    assert data[-1] == 1


def test_forced_format(tmp_path):
    path = tmp_path / "weird.dat"
    path.write_text("0x80 W\n")
    records = list(TraceParser(format_name='text').parse_file(path))
    assert records[0].address == 0x80


def test_unknown_format():
    with pytest.raises(ValueError):
        TraceParser(format_name='champsim')


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(TraceParser().parse_file(tmp_path / "missing.trace"))


def test_patterns():
    scan = generate_accesses(100, 'scan')
    assert len({r.address for r in scan}) == 100

    loop = generate_accesses(100, 'loop', working_set=10)
    assert len({r.address for r in loop}) == 10

    assert generate_accesses(50, 'mixed') == generate_accesses(50, 'mixed')

    with pytest.raises(ValueError):
        generate_accesses(10, 'zigzag')


def test_trace_statistics():
    trace = AccessTrace(generate_accesses(100, 'loop', working_set=10))
    stats = trace.get_statistics()
    assert stats['count'] == 100
    assert stats['unique_blocks'] == 10
    assert stats['reads'] + stats['writes'] == 100
    assert AccessTrace().get_statistics() == {'count': 0}


def test_text_format_name():
    assert SimpleTextFormat().get_format_name() == "SimpleText"
    assert 'binary' in TraceParser.list_supported_formats()
    assert 'gz' in TraceParser.list_supported_compressions()


def test_out_of_range_addresses_are_skipped(tmp_path, caplog):
    path = tmp_path / "signed.trace"
    path.write_text("-4096 R\n0x40 W\n18446744073709551616 R\n")

    with caplog.at_level(logging.WARNING, logger="drrip"):
        records = list(TraceParser().parse_file(path))

    assert records == [MemoryAccess(address=0x40, is_write=True)]
    assert "line 1" in caplog.text
    assert "line 3" in caplog.text


def test_truncated_binary_record_warns(tmp_path, caplog):
    path = tmp_path / "short.bin"
    full = BinaryAccessFormat.pack(MemoryAccess(address=0x80, is_write=False))
    path.write_bytes(full + full[:4])

    with caplog.at_level(logging.WARNING, logger="drrip"):
        records = list(TraceParser().parse_file(path))

    assert records == [MemoryAccess(address=0x80, is_write=False)]
    assert "truncated" in caplog.text
