"""Unit tests for ChunkUploader."""

import asyncio
import gzip
import random
import time

import httpx
import pytest

from producer.config import ProducerConfig
from producer.models import Chunk
from producer.uploader import ChunkUploader, describe_error, parse_acknowledged_bytes

URL = 'https://collector.test/up'


def make_chunks(count):
    return [Chunk(payload=f'chunk-{index}'.encode() * index, sequence_token=str(index)) for index in range(1, count + 1)]


def make_uploader(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ChunkUploader(ProducerConfig(url=URL), client=client), client


@pytest.mark.parametrize('body, expected', [
    ('123', 123),
    (' 42\n', 42),
    ('', 0),
    ('not a number', 0),
    ('{"message_code": "ChecksumFail"}', 0),
])
def test_parse_acknowledged_bytes(body, expected):
    assert parse_acknowledged_bytes(body) == expected


def test_describe_error():
    structured = httpx.Response(500, json={'message_code': 'ChecksumFail', 'message_text': ''})
    with_text = httpx.Response(500, json={'message_code': 'ParseError', 'message_text': 'truncated'})
    plain = httpx.Response(502, text='<html>bad gateway</html>')

    assert describe_error(structured) == 'ChecksumFail'
    assert describe_error(with_text) == 'ParseError: truncated'
    assert describe_error(plain) == 'HTTP 502'


@pytest.mark.asyncio
async def test_sends_protocol_headers():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text=str(len(request.content)))

    uploader, client = make_uploader(handler)
    chunks = make_chunks(3)
    async with client:
        await uploader.upload(chunks)

    by_sequence = {request.headers['CURRENT_FILE_COUNTER']: request for request in seen}
    assert sorted(by_sequence) == ['1', '2', '3']
    for chunk in chunks:
        request = by_sequence[chunk.sequence_token]
        assert request.method == 'POST'
        assert str(request.url) == URL
        assert request.headers['TOTAL_FILE_COUNT'] == '3'
        assert request.headers['checksum'] == chunk.fingerprint
        assert request.headers['Content-Type'] == 'application/octet-stream'
        assert 'Content-Encoding' not in request.headers
        assert request.content == chunk.payload


@pytest.mark.asyncio
async def test_compressed_upload_sends_gzip_body():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(204)

    uploader, client = make_uploader(handler)
    chunks = make_chunks(2)
    async with client:
        report = await uploader.upload(chunks, compress=True)

    assert not report.failed
    for request in seen:
        chunk = chunks[int(request.headers['CURRENT_FILE_COUNTER']) - 1]
        assert request.headers['Content-Encoding'] == 'gzip'
        assert gzip.decompress(request.content) == chunk.payload
        assert request.headers['checksum'] == chunk.fingerprint


@pytest.mark.asyncio
async def test_total_is_sum_of_acknowledged_bytes_regardless_of_order():
    async def handler(request):
        await asyncio.sleep(random.uniform(0, 0.02))
        return httpx.Response(200, text=str(len(request.content)))

    uploader, client = make_uploader(handler)
    chunks = make_chunks(17)
    async with client:
        report = await uploader.upload(chunks)

    assert report.total_bytes == sum(chunk.size for chunk in chunks)
    assert len(report.results) == 17
    assert not report.failed


@pytest.mark.asyncio
async def test_empty_response_body_counts_as_zero():
    uploader, client = make_uploader(lambda request: httpx.Response(204))
    async with client:
        report = await uploader.upload(make_chunks(2))

    assert report.total_bytes == 0
    assert not report.failed


@pytest.mark.asyncio
async def test_transport_error_is_isolated_to_one_chunk():
    def handler(request):
        if request.headers['CURRENT_FILE_COUNTER'] == '2':
            raise httpx.ConnectError('connection refused', request=request)
        return httpx.Response(200, text='10')

    uploader, client = make_uploader(handler)
    async with client:
        report = await uploader.upload(make_chunks(4))

    assert report.total_bytes == 30
    assert [result.sequence_token for result in report.failed] == ['2']
    assert 'ConnectError' in report.failed[0].error


@pytest.mark.asyncio
async def test_rejected_chunk_reports_message_code():
    def handler(request):
        if request.headers['CURRENT_FILE_COUNTER'] == '1':
            return httpx.Response(500, json={'message_code': 'ChecksumFail', 'message_text': ''})
        return httpx.Response(200, text='5')

    uploader, client = make_uploader(handler)
    async with client:
        report = await uploader.upload(make_chunks(2))

    assert report.total_bytes == 5
    failed = report.failed[0]
    assert failed.sequence_token == '1'
    assert failed.status_code == 500
    assert failed.error == 'ChecksumFail'


@pytest.mark.asyncio
async def test_budget_spaces_dispatches():
    dispatched = []

    def handler(request):
        dispatched.append(time.monotonic())
        return httpx.Response(204)

    uploader, client = make_uploader(handler)
    async with client:
        await uploader.upload(make_chunks(3), budget=0.3)

    dispatched.sort()
    assert dispatched[-1] - dispatched[0] >= 0.15


@pytest.mark.asyncio
async def test_dispatches_do_not_wait_for_earlier_responses():
    release = asyncio.Event()
    in_flight = []

    async def handler(request):
        in_flight.append(request.headers['CURRENT_FILE_COUNTER'])
        if len(in_flight) == 3:
            release.set()
        await asyncio.wait_for(release.wait(), timeout=2)
        return httpx.Response(204)

    uploader, client = make_uploader(handler)
    async with client:
        report = await uploader.upload(make_chunks(3))

    assert not report.failed
    assert sorted(in_flight) == ['1', '2', '3']


@pytest.mark.asyncio
async def test_preset_cancel_skips_every_chunk():
    calls = []
    uploader, client = make_uploader(lambda request: calls.append(request) or httpx.Response(204))
    cancel = asyncio.Event()
    cancel.set()

    async with client:
        report = await uploader.upload(make_chunks(3), cancel=cancel)

    assert calls == []
    assert len(report.results) == 3
    assert all(result.error == 'cancelled' for result in report.results)


@pytest.mark.asyncio
async def test_unbuildable_request_cancels_remaining_dispatches():
    calls = []
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: calls.append(request) or httpx.Response(204)))
    uploader = ChunkUploader(ProducerConfig(url='https://exa mple.test:notaport/up'), client=client)

    async with client:
        report = await uploader.upload(make_chunks(3), budget=0.3)

    assert calls == []
    assert len(report.results) == 3
    assert len(report.failed) == 3
    assert 'Request construction failed' in report.results[0].error


@pytest.mark.asyncio
async def test_empty_chunk_list():
    uploader, client = make_uploader(lambda request: httpx.Response(204))
    async with client:
        report = await uploader.upload([])

    assert report.total_bytes == 0
    assert report.results == []


@pytest.mark.asyncio
async def test_cancelled_upload_unwinds_dispatches():
    entered = []
    unwound = []

    async def handler(request):
        entered.append(request.headers['CURRENT_FILE_COUNTER'])
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            unwound.append(request.headers['CURRENT_FILE_COUNTER'])
            raise

    uploader, client = make_uploader(handler)
    async with client:
        upload = asyncio.create_task(uploader.upload(make_chunks(3)))
        while len(entered) < 3:
            await asyncio.sleep(0.01)
        upload.cancel()

        with pytest.raises(asyncio.CancelledError):
            await upload

    assert sorted(unwound) == ['1', '2', '3']
    pending = [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]
    assert pending == []


@pytest.mark.asyncio
async def test_client_creation_failure_leaves_no_task(monkeypatch):
    def broken_client(self):
        raise RuntimeError('no client')

    monkeypatch.setattr(ChunkUploader, '_create_client', broken_client)

    with pytest.raises(RuntimeError):
        await ChunkUploader(ProducerConfig(url=URL)).upload(make_chunks(2))

    assert [task for task in asyncio.all_tasks() if task is not asyncio.current_task()] == []


@pytest.mark.asyncio
async def test_results_record_http_version():
    uploader, client = make_uploader(lambda request: httpx.Response(204))
    async with client:
        report = await uploader.upload(make_chunks(1))

    assert report.results[0].http_version == 'HTTP/1.1'
