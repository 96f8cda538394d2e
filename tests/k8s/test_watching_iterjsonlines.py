from unittest.mock import Mock

import pytest

from k8soperator.clients.api import iter_jsonlines


def make_content(*chunks):

    async def iter_chunked(n: int):
        for chunk in chunks:
            yield chunk

    return Mock(iter_chunked=iter_chunked)


async def collect(content):
    return [line async for line in iter_jsonlines(content)]


@pytest.mark.parametrize('chunks, expected', [
    pytest.param([], [], id='no-chunks'),
    pytest.param([b''], [], id='empty-chunk'),
    pytest.param([b'\n \n'], [], id='blank-lines-only'),
    pytest.param([b'{"a": 1}'], [b'{"a": 1}'], id='unterminated-line'),
    pytest.param([b'{"a": 1}\n{"b": 2}\n'], [b'{"a": 1}', b'{"b": 2}'], id='terminated-lines'),
    pytest.param([b'\n\n{"a": 1}\n\n\n{"b": 2}\n\n'], [b'{"a": 1}', b'{"b": 2}'], id='gaps'),
    pytest.param([b'{"a"', b': 1}\n{"b', b'": 2}'], [b'{"a": 1}', b'{"b": 2}'], id='split-lines'),
    pytest.param([b'{"a": 1}', b'\n', b'{"b": 2}'], [b'{"a": 1}', b'{"b": 2}'], id='split-at-eol'),
])
async def test_lines_across_chunks(chunks, expected):
    lines = await collect(make_content(*chunks))
    assert lines == expected


async def test_lines_longer_than_aiohttp_limits():
    long_line = b'x' * 1024 * 1024
    chunks = [long_line[i:i + 65536] for i in range(0, len(long_line), 65536)]
    lines = await collect(make_content(*chunks, b'\nshort\n'))
    assert lines == [long_line, b'short']
