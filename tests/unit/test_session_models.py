"""Tests for upload context models."""
import time
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from cloudup.core.policy import Policy
from cloudup.core.session import ContextState, TaskIdentity, UploadContext, count_chunks
from cloudup.core.upload.models import LocalFile


class TestTaskIdentity:
    """Test suite for TaskIdentity."""

    def test_for_upload(self):
        """Test identity is built from policy, file and destination."""
        file = LocalFile(path=Path('a.txt'), name='a.txt', size=10, last_modified=1700000000)

        identity = TaskIdentity.for_upload(Policy(id=2, type='local'), file, '/docs/')

        assert identity.key == '2|/docs|a.txt|10|1700000000'

    def test_root_destination(self):
        """Test root destination keeps its slash."""
        identity = TaskIdentity(1, 'a', 1, 0, '/')

        assert identity.key == '1|/|a|1|0'

    def test_distinct_files(self):
        """Test differing files have differing keys."""
        first = TaskIdentity(1, 'a', 1, 0, '/')
        second = TaskIdentity(1, 'a', 2, 0, '/')

        assert first.key != second.key


class TestCountChunks:
    """Test suite for count_chunks."""

    def test_exact_multiple(self):
        assert count_chunks(16, 4) == 4

    def test_remainder(self):
        assert count_chunks(17, 4) == 5

    def test_unchunked_and_empty(self):
        """Test a single chunk without chunk size or content."""
        assert count_chunks(100, 0) == 1
        assert count_chunks(0, 4) == 1


class TestUploadContext:
    """Test suite for UploadContext."""

    @pytest.fixture
    def ctx(self, make_context):
        """Four chunk context."""
        return make_context(policy_type='local', total_chunks=4, file_size=16)

    def test_from_session_response(self):
        """Test session fields are mapped."""
        expires = int(time.time()) + 600
        data = {
            'sessionID': 'abc',
            'chunkSize': 5,
            'expires': expires,
            'uploadURLs': ['https://bucket/1', 'https://bucket/2'],
            'credential': 'cred',
            'uploadID': 'up-1',
            'completeURL': 'https://bucket/complete',
        }

        ctx = UploadContext.from_session_response(data, Policy(id=1, type='s3'), 9, 'key')

        assert ctx.session_id == 'abc'
        assert ctx.total_chunks == 2
        assert ctx.expires_at == datetime.fromtimestamp(expires)
        assert ctx.upload_urls == ['https://bucket/1', 'https://bucket/2']
        assert ctx.upload_id == 'up-1'
        assert ctx.complete_url == 'https://bucket/complete'
        assert ctx.task_key == 'key'
        assert ctx.state == ContextState.ACTIVE

    def test_from_session_response_without_id(self):
        """Test a response without session id is rejected."""
        with pytest.raises(ValueError):
            UploadContext.from_session_response({'chunkSize': 4}, Policy(id=1, type='local'), 8)

    def test_acknowledge_idempotent(self, ctx):
        """Test acknowledging twice counts once."""
        assert ctx.acknowledge(2)
        assert not ctx.acknowledge(2)

        assert ctx.acknowledged == {2}
        assert ctx.pending_indices() == [0, 1, 3]

    def test_acknowledge_records_tag(self, ctx):
        """Test part tags are kept."""
        ctx.acknowledge(0, '"etag-0"')

        assert ctx.parts == {0: '"etag-0"'}

    def test_acknowledge_out_of_range(self, ctx):
        """Test unknown chunk index raises."""
        with pytest.raises(IndexError):
            ctx.acknowledge(4)

    def test_is_complete(self, ctx):
        """Test completion after every chunk."""
        for index in range(4):
            ctx.acknowledge(index)

        assert ctx.is_complete

    def test_is_expired(self, ctx):
        """Test expiry against the declared TTL."""
        now = datetime.now()
        ctx.expires_at = now + timedelta(seconds=30)

        assert not ctx.is_expired(now)
        assert ctx.is_expired(now, margin=60)
        assert ctx.is_expired(now + timedelta(seconds=31))

    def test_no_ttl_never_expires(self, ctx):
        """Test contexts without TTL stay valid."""
        assert not ctx.is_expired()

    def test_expired_state(self, ctx):
        """Test EXPIRED state is expired whatever the clock says."""
        ctx.state = ContextState.EXPIRED

        assert ctx.is_expired()
        assert not ctx.is_active

    def test_json_round_trip(self, ctx):
        """Test serialization keeps resume data."""
        ctx.acknowledge(1, 'tag-1')
        ctx.expires_at = datetime.now() + timedelta(hours=1)

        restored = UploadContext.from_json(ctx.to_json())

        assert restored == ctx

    def test_from_dict_malformed(self):
        """Test malformed records raise."""
        with pytest.raises(KeyError):
            UploadContext.from_dict({'session_id': 'x'})
