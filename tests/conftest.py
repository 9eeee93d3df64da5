"""
Pytest configuration and fixtures for the effects worker tests.

AWS clients are replaced by small in-memory fakes that share one call log,
so tests can assert on the order of storage and queue operations. ffmpeg is
replaced by a fake subprocess.run that writes the output file.
"""

import json
import subprocess
from collections import deque

import pytest
from botocore.exceptions import ClientError

from effects.presets import PresetRegistry
from util.config import WorkerConfig
from workers.effect_worker import EffectWorker

QUEUE_URL = 'https://sqs.us-east-1.amazonaws.com/123456789012/video-effects-jobs'


class FakeS3:
    def __init__(self, log):
        self.log = log
        self.objects = {}
        self.extra_args = {}

    def put(self, bucket, key, data=b'video-bytes'):
        self.objects[(bucket, key)] = data

    def download_file(self, bucket, key, local_path):
        self.log.append(('download', bucket, key))
        if (bucket, key) not in self.objects:
            raise ClientError({'Error': {'Code': '404', 'Message': 'Not Found'}}, 'HeadObject')
        with open(local_path, 'wb') as f:
            f.write(self.objects[(bucket, key)])

    def upload_file(self, local_path, bucket, key, ExtraArgs=None):
        self.log.append(('upload', bucket, key))
        with open(local_path, 'rb') as f:
            self.objects[(bucket, key)] = f.read()
        self.extra_args[(bucket, key)] = ExtraArgs

    def delete_object(self, Bucket, Key):
        self.log.append(('delete', Bucket, Key))
        self.objects.pop((Bucket, Key), None)


class FakeSQS:
    def __init__(self, log):
        self.log = log
        self.messages = deque()
        self.deleted = []
        self.visibility_changes = []
        self.receive_calls = []

    def push(self, body, message_id='msg-1'):
        if not isinstance(body, str):
            body = json.dumps(body)
        self.messages.append({
            'MessageId': message_id,
            'ReceiptHandle': f'rh-{message_id}',
            'Body': body,
        })

    def receive_message(self, **kwargs):
        self.receive_calls.append(kwargs)
        if self.messages:
            return {'Messages': [self.messages.popleft()]}
        return {}

    def delete_message(self, QueueUrl, ReceiptHandle):
        self.log.append(('delete_message', ReceiptHandle))
        self.deleted.append(ReceiptHandle)

    def change_message_visibility(self, QueueUrl, ReceiptHandle, VisibilityTimeout):
        self.visibility_changes.append((ReceiptHandle, VisibilityTimeout))


class FakeFfmpeg:
    """Stands in for subprocess.run; writes the last argv element as output."""

    def __init__(self):
        self.calls = []
        self.returncode = 0
        self.stderr = ''
        self.timeout = False
        self.write_output = True

    def __call__(self, argv, capture_output=False, text=False, timeout=None, **kwargs):
        self.calls.append(list(argv))
        if self.timeout:
            raise subprocess.TimeoutExpired(argv, timeout, output='', stderr='frame=  120 fps=30')
        if self.returncode == 0 and self.write_output:
            with open(argv[-1], 'wb') as f:
                f.write(b'processed-video')
        return subprocess.CompletedProcess(argv, self.returncode, stdout='', stderr=self.stderr)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires AWS and ffmpeg)"
    )


@pytest.fixture
def call_log():
    return []


@pytest.fixture
def fake_s3(call_log):
    return FakeS3(call_log)


@pytest.fixture
def fake_sqs(call_log):
    return FakeSQS(call_log)


@pytest.fixture
def ffmpeg(monkeypatch):
    fake = FakeFfmpeg()
    monkeypatch.setattr('effects.transform.subprocess.run', fake)
    return fake


@pytest.fixture
def worker_config(tmp_path):
    return WorkerConfig(
        bucket='b',
        queue_url=QUEUE_URL,
        ffmpeg_timeout=60.0,
        tmp_dir=str(tmp_path / 'work'),
        log_file=None,
        error_backoff_seconds=0,
        preset_reload_interval=3600,
    )


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def worker(worker_config, fake_sqs, fake_s3, ffmpeg, sleeps):
    return EffectWorker(worker_config, fake_sqs, fake_s3, PresetRegistry(), sleep=sleeps.append)
