"""Tests for StorageClient HTTP communication and client-side encryption."""

from unittest.mock import patch

import httpx
import pytest

from cli.storage_client import StorageClient
from common.content_id import identify
from common.exceptions import (
    ConflictError,
    DecryptionError,
    InvalidKeyError,
    NotFoundError,
    PayloadTooLargeError,
    StashError,
    StorageCorruptedError,
    ValidationError,
)


def mock_client(config, handler):
    client = StorageClient(config)
    client.session = httpx.Client(
        transport=httpx.MockTransport(handler),
        base_url='http://node.test',
    )
    return client


def error_handler(status_code, body):
    def handler(request):
        return httpx.Response(status_code, json=body)
    return handler


class TestErrorMapping:

    @pytest.mark.parametrize('status_code,body,expected', [
        (400, {'error': 'No file uploaded', 'code': 'VALIDATION_ERROR'}, ValidationError),
        (404, {'error': 'File x not found', 'code': 'FILE_NOT_FOUND'}, NotFoundError),
        (404, {'error': 'API route not found', 'code': 'ROUTE_NOT_FOUND'}, NotFoundError),
        (413, {'error': 'too big', 'code': 'PAYLOAD_TOO_LARGE'}, PayloadTooLargeError),
        (500, {'error': 'blob missing', 'code': 'STORAGE_CORRUPTED'}, StorageCorruptedError),
        (404, {'error': 'gone'}, NotFoundError),
        (409, {'error': 'already stored', 'code': 'CONFLICT'}, ConflictError),
        (500, {'error': 'boom', 'code': 'CATALOG_ERROR'}, StashError),
    ])
    def test_error_codes(self, temp_config, status_code, body, expected):
        client = mock_client(temp_config, error_handler(status_code, body))

        with pytest.raises(expected) as exc_info:
            client.list_files()

        assert body['error'] in str(exc_info.value)

    def test_non_json_error_body(self, temp_config):
        client = mock_client(temp_config, lambda request: httpx.Response(500, text='Bad Gateway page'))

        with pytest.raises(StashError, match='Bad Gateway page'):
            client.list_files()


class TestRetries:

    @patch('cli.storage_client.time.sleep')
    def test_retries_on_unavailable_then_succeeds(self, mock_sleep, temp_config):
        temp_config.data['max_retries'] = 2
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json=[])

        client = mock_client(temp_config, handler)

        assert client.list_files() == []
        assert len(calls) == 3
        assert mock_sleep.call_count == 2

    @patch('cli.storage_client.time.sleep')
    def test_does_not_retry_client_errors(self, mock_sleep, temp_config):
        temp_config.data['max_retries'] = 3
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404, json={'error': 'nope', 'code': 'FILE_NOT_FOUND'})

        client = mock_client(temp_config, handler)

        with pytest.raises(NotFoundError):
            client.get_metadata('0' * 64)
        assert len(calls) == 1
        mock_sleep.assert_not_called()

    @patch('cli.storage_client.time.sleep')
    def test_does_not_retry_storage_corrupted(self, mock_sleep, temp_config):
        temp_config.data['max_retries'] = 3
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={'error': 'blob missing', 'code': 'STORAGE_CORRUPTED'})

        client = mock_client(temp_config, handler)

        with pytest.raises(StorageCorruptedError):
            client.list_files()
        assert len(calls) == 1

    @patch('cli.storage_client.time.sleep')
    def test_connection_error_after_retries(self, mock_sleep, temp_config):
        temp_config.data['max_retries'] = 2
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError('connection refused', request=request)

        client = mock_client(temp_config, handler)

        with pytest.raises(ConnectionError, match='Cannot connect'):
            client.list_files()
        assert len(calls) == 3
        assert mock_sleep.call_count == 2

    def test_timeout_reported(self, temp_config):
        def handler(request):
            raise httpx.ReadTimeout('slow', request=request)

        client = mock_client(temp_config, handler)

        with pytest.raises(ConnectionError, match='timed out'):
            client.list_files()

    def test_request_id_header_sent(self, temp_config):
        seen = {}

        def handler(request):
            seen['request_id'] = request.headers.get('X-Request-ID')
            return httpx.Response(200, json=[])

        client = mock_client(temp_config, handler)
        client.list_files()

        assert seen['request_id'] == client.request_id


class TestUploadRequest:

    def test_plaintext_form_fields(self, temp_config, sample_file):
        captured = {}

        def handler(request):
            captured['body'] = request.read()
            captured['content_type'] = request.headers['content-type']
            return httpx.Response(200, json={
                'name': 'notes.txt',
                'size': 11,
                'hash': identify(b'hello world'),
                'uploadedAt': '2024-01-01T00:00:00.000Z',
                'path': identify(b'hello world'),
                'isEncrypted': False,
                'mimeType': 'text/plain',
            })

        client = mock_client(temp_config, handler)
        remote = client.upload_file(str(sample_file))

        assert remote.name == 'notes.txt'
        assert captured['content_type'].startswith('multipart/form-data')
        body = captured['body']
        assert b'name="isEncrypted"\r\n\r\nfalse' in body
        assert identify(b'hello world').encode() in body
        assert b'name="mimeType"\r\n\r\ntext/plain' in body
        assert b'hello world' in body

    def test_answer_with_other_encryption_flag_rejected(self, temp_config, sample_file):
        def handler(request):
            return httpx.Response(200, json={
                'name': 'notes.txt',
                'size': 40,
                'hash': identify(b'hello world'),
                'uploadedAt': '2024-01-01T00:00:00.000Z',
                'path': identify(b'hello world'),
                'isEncrypted': True,
            })

        client = mock_client(temp_config, handler)

        with pytest.raises(ConflictError):
            client.upload_file(str(sample_file))

    def test_missing_file_sends_nothing(self, temp_config, tmp_path):
        def handler(request):
            raise AssertionError('no request expected')

        client = mock_client(temp_config, handler)

        with pytest.raises(ValidationError):
            client.upload_file(str(tmp_path / 'absent.txt'))

    def test_empty_passphrase_sends_nothing(self, temp_config, sample_file):
        def handler(request):
            raise AssertionError('no request expected')

        client = mock_client(temp_config, handler)

        with pytest.raises(ValidationError):
            client.upload_file(str(sample_file), passphrase='')


class TestAgainstNode:
    """End-to-end flows through the in-process node."""

    def test_scenario_a_plaintext_round_trip(self, storage_client, sample_file):
        uploaded = storage_client.upload_file(str(sample_file))

        assert uploaded.name == 'notes.txt'
        assert uploaded.size == 11
        assert not uploaded.is_encrypted

        listing = storage_client.list_files()
        assert [r.name for r in listing] == ['notes.txt']

        downloaded = storage_client.get_file(uploaded.id)
        assert downloaded.data == b'hello world'
        assert downloaded.name == 'notes.txt'
        assert not downloaded.decrypted

    def test_scenario_b_encrypted_round_trip(self, storage_client, tmp_path):
        plaintext = b'%PDF-1.4 quarterly numbers ' * 40
        secret = tmp_path / 'secret.pdf'
        secret.write_bytes(plaintext)

        uploaded = storage_client.upload_file(str(secret), passphrase='correct-horse')

        assert uploaded.is_encrypted
        assert uploaded.hash == identify(plaintext)
        assert uploaded.size != len(plaintext)
        assert uploaded.mime_type == 'application/pdf'

        downloaded = storage_client.get_file(uploaded.id, passphrase='correct-horse')
        assert downloaded.data == plaintext
        assert downloaded.decrypted
        assert downloaded.mime_type == 'application/pdf'

        with pytest.raises(InvalidKeyError):
            storage_client.get_file(uploaded.id, passphrase='wrong-pass')

    def test_invalid_key_is_a_decryption_error(self, storage_client, tmp_path):
        secret = tmp_path / 'secret.txt'
        secret.write_bytes(b'classified')
        uploaded = storage_client.upload_file(str(secret), passphrase='correct-horse')

        with pytest.raises(DecryptionError):
            storage_client.get_file(uploaded.id, passphrase='wrong-pass')

    def test_encrypted_download_without_passphrase_returns_ciphertext(self, storage_client, tmp_path):
        secret = tmp_path / 'secret.txt'
        secret.write_bytes(b'classified')
        uploaded = storage_client.upload_file(str(secret), passphrase='correct-horse')

        downloaded = storage_client.get_file(uploaded.id)

        assert not downloaded.decrypted
        assert downloaded.data != b'classified'
        downloaded.data.decode('ascii')

    def test_scenario_c_empty_file_rejected_locally(self, storage_client, node_storage, tmp_path):
        catalog, blob_store = node_storage
        empty = tmp_path / 'empty.txt'
        empty.write_bytes(b'')

        with patch.object(storage_client, '_request_with_retry') as mock_request:
            with pytest.raises(ValidationError):
                storage_client.upload_file(str(empty))
            mock_request.assert_not_called()

        assert len(catalog) == 0
        assert blob_store.list_keys() == []

    def test_scenario_d_unknown_file(self, storage_client):
        with pytest.raises(NotFoundError):
            storage_client.get_file('does-not-exist')

    def test_search_and_delete(self, storage_client, sample_file, tmp_path):
        other = tmp_path / 'Report.PDF'
        other.write_bytes(b'report body')
        notes = storage_client.upload_file(str(sample_file))
        storage_client.upload_file(str(other))

        assert [r.name for r in storage_client.search_files('report')] == ['Report.PDF']

        storage_client.delete_file(notes.id)

        assert [r.name for r in storage_client.list_files()] == ['Report.PDF']
        with pytest.raises(NotFoundError):
            storage_client.delete_file(notes.id)

    def test_corrupted_download_detected(self, storage_client, node_storage, sample_file):
        _, blob_store = node_storage
        uploaded = storage_client.upload_file(str(sample_file))
        blob_store.put(uploaded.path, b'HELLO WORLD')

        with pytest.raises(StorageCorruptedError):
            storage_client.get_file(uploaded.id)

    def test_storage_quota(self, storage_client, sample_file):
        storage_client.upload_file(str(sample_file))

        quota = storage_client.get_storage_quota()

        assert quota.total_gb == 10.0
        assert quota.used_gb == pytest.approx(11 / (1024 ** 3))
        assert quota.available_gb == pytest.approx(10.0 - 11 / (1024 ** 3))
        assert quota.cost_per_month == 10.0

    def test_second_passphrase_upload_is_refused(self, storage_client, tmp_path):
        secret = tmp_path / 'secret.pdf'
        secret.write_bytes(b'%PDF-1.4 board minutes')
        first = storage_client.upload_file(str(secret), passphrase='alice-pass')

        with pytest.raises(ConflictError):
            storage_client.upload_file(str(secret), passphrase='correct-horse')

        downloaded = storage_client.get_file(first.id, passphrase='alice-pass')
        assert downloaded.data == b'%PDF-1.4 board minutes'

    def test_plaintext_upload_over_claimed_hash_is_refused(self, storage_client, sample_file):
        storage_client.session.post(
            '/api/upload',
            files={'file': ('junk.bin', b'junk-not-ciphertext')},
            data={'isEncrypted': 'true', 'hash': identify(b'hello world')},
        )

        with pytest.raises(ConflictError):
            storage_client.upload_file(str(sample_file))
