"""
Effect Worker - Stateless job processor for applying video effects.
Pulls one job at a time from SQS, downloads the input video from S3, runs
ffmpeg with the requested preset, uploads the result and removes the source.

On success: uploads output, deletes the input object, then deletes the SQS message.
On failure: message returns to queue after visibility timeout (redrive policy
decides when it moves to the dead-letter queue).
"""

import argparse
import logging
import os
import signal
import sys
import tempfile
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from effects.presets import Preset, PresetRegistry, build_command
from effects.transform import TransformResult, check_binary, run_transform
from job_queue.sqs_queue import (
    change_message_visibility,
    delete_message,
    get_or_create_queue,
    get_sqs_client,
    receive_messages,
)
from util.config import WorkerConfig, load_config
from util.logging_setup import setup_logging
from util.s3_utils import (
    VIDEO_UPLOAD_ARGS,
    delete_object,
    download_file,
    get_s3_client,
    upload_file,
)
from workers.errors import (
    ConfigError,
    JobParseError,
    StorageError,
    TransformError,
    TransformTimeout,
    UnknownPresetError,
)
from workers.jobs import EffectJob, parse_job

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    INVALID = 'invalid'


@dataclass
class JobResult:
    message_id: str
    status: JobStatus
    job: Optional[EffectJob] = None
    preset: Optional[str] = None
    error: Optional[str] = None
    message_deleted: bool = False


class EffectWorker:
    """
    Sequential SQS -> ffmpeg -> S3 worker. One job in flight at a time.
    """

    def __init__(self, config: WorkerConfig, sqs_client, s3_client, presets: PresetRegistry,
                 queue_url: Optional[str] = None, sleep=time.sleep):
        self.config = config
        self.sqs = sqs_client
        self.s3 = s3_client
        self.presets = presets
        self.queue_url = queue_url or config.queue_url
        if not self.queue_url:
            raise ConfigError("No queue URL configured")

        self._sleep = sleep
        self._stop_requested = False
        self._reload_requested = False
        self._last_preset_check = time.monotonic()
        self.consecutive_empty = 0
        self.stats: Dict[str, int] = {status.value: 0 for status in JobStatus}

        if config.tmp_dir:
            os.makedirs(config.tmp_dir, exist_ok=True)

    def stop(self):
        """Finish the in-flight job, then leave the loop."""
        self._stop_requested = True

    def request_preset_reload(self):
        """Reload the preset file before the next job."""
        self._reload_requested = True

    def _maybe_reload_presets(self):
        if self._reload_requested:
            self._reload_requested = False
            self._last_preset_check = time.monotonic()
            logger.info("Preset reload requested")
            self.presets.reload()
            return

        now = time.monotonic()
        if now - self._last_preset_check >= self.config.preset_reload_interval:
            self._last_preset_check = now
            self.presets.reload_if_changed()

    def process_effect(self, job: EffectJob, preset: Preset) -> TransformResult:
        """
        Download, transform and upload one job, then delete the source object.
        Temporary files live in a per-job directory removed on every path.

        Raises:
            StorageError: download, upload or delete failed
            TransformError: ffmpeg failed or produced no output
            TransformTimeout: ffmpeg exceeded the configured timeout
        """
        with tempfile.TemporaryDirectory(prefix='effect-', dir=self.config.tmp_dir) as tmpdir:
            input_ext = os.path.splitext(job.input_key)[1] or '.mp4'
            local_input = os.path.join(tmpdir, f'input{input_ext}')
            local_output = os.path.join(tmpdir, 'output.mp4')

            logger.info("  Downloading %s ...", job.source)
            download_file(self.s3, job.bucket, job.input_key, local_input)

            if not os.path.exists(local_input) or os.path.getsize(local_input) == 0:
                raise StorageError('download', job.bucket, job.input_key,
                                   ValueError("object is empty"))

            size_mb = os.path.getsize(local_input) / (1024 * 1024)
            logger.info("  Downloaded: %.2f MB", size_mb)

            cmd = build_command(preset, local_input, local_output, binary=self.config.ffmpeg_binary)
            logger.info("  Applying '%s' (timeout %ss)...", preset.name, self.config.ffmpeg_timeout)
            result = run_transform(cmd, timeout=self.config.ffmpeg_timeout)

            if not os.path.exists(local_output) or os.path.getsize(local_output) == 0:
                raise TransformError("ffmpeg exited 0 but wrote no output", result)

            logger.info("  Transform finished in %.1fs", result.duration)

            # Upload before deleting the input so a crash never loses the only copy
            upload_file(self.s3, local_output, job.bucket, job.output_key, extra_args=VIDEO_UPLOAD_ARGS)
            logger.info("  Uploaded s3://%s/%s", job.bucket, job.output_key)

            delete_object(self.s3, job.bucket, job.input_key)
            logger.info("  Deleted source %s", job.source)

            return result

    def _extend_visibility(self, receipt_handle: str):
        needed = self.config.job_visibility_timeout
        if needed <= self.config.visibility_timeout:
            return
        try:
            change_message_visibility(self.sqs, self.queue_url, receipt_handle, needed)
        except Exception as e:
            logger.warning("  Could not extend visibility to %ss: %s", needed, e)

    def handle_message(self, msg: Dict) -> JobResult:
        """
        Run one queue message through parse, preset lookup and processing.
        Only a successful job deletes the message; every other outcome
        leaves it for redelivery.
        """
        message_id = msg.get('MessageId', 'unknown')
        receipt_handle = msg['ReceiptHandle']

        try:
            job = parse_job(msg.get('Body', ''), default_bucket=self.config.bucket)
        except JobParseError as e:
            logger.error("Message %s: malformed job, leaving for redrive - %s", message_id, e)
            return JobResult(message_id, JobStatus.INVALID, error=str(e))

        try:
            preset = self.presets.resolve(job.effect_type)
        except UnknownPresetError as e:
            logger.error("Message %s (%s): invalid configuration - %s", message_id, job.source, e)
            return JobResult(message_id, JobStatus.INVALID, job=job, error=str(e))

        logger.info("=" * 50)
        logger.info("Message %s: %s -> s3://%s/%s [%s]",
                    message_id, job.source, job.bucket, job.output_key, preset.name)

        self._extend_visibility(receipt_handle)

        try:
            self.process_effect(job, preset)
        except TransformTimeout as e:
            logger.error("Message %s (%s): FAILED - %s", message_id, job.source, e)
            if e.result is not None:
                logger.error("  Command: %s", e.result.command_line)
                logger.error("  stderr (tail):\n%s", e.result.stderr_tail())
            return JobResult(message_id, JobStatus.FAILED, job=job, preset=preset.name, error=str(e))
        except TransformError as e:
            logger.error("Message %s (%s): FAILED - %s", message_id, job.source, e)
            if e.result is not None:
                logger.error("  Command: %s", e.result.command_line)
                if e.result.stdout:
                    logger.error("  stdout:\n%s", e.result.stdout[-2000:])
                logger.error("  stderr (tail):\n%s", e.result.stderr_tail())
            return JobResult(message_id, JobStatus.FAILED, job=job, preset=preset.name, error=str(e))
        except StorageError as e:
            logger.error("Message %s (%s): FAILED - %s", message_id, job.source, e)
            return JobResult(message_id, JobStatus.FAILED, job=job, preset=preset.name, error=str(e))
        except Exception as e:
            logger.exception("Message %s (%s): FAILED with unexpected error", message_id, job.source)
            return JobResult(message_id, JobStatus.FAILED, job=job, preset=preset.name, error=str(e))

        result = JobResult(message_id, JobStatus.SUCCEEDED, job=job, preset=preset.name)
        try:
            delete_message(self.sqs, self.queue_url, receipt_handle)
            result.message_deleted = True
        except Exception:
            # Output is stored and the source is gone; a redelivery fails on the missing input
            logger.exception("Message %s: processed but could not delete message", message_id)

        logger.info("Message %s: SUCCESS", message_id)
        return result

    def poll_once(self) -> List[JobResult]:
        """One long-poll receive and the handling of whatever arrived."""
        self._maybe_reload_presets()

        messages = receive_messages(
            self.sqs,
            self.queue_url,
            max_messages=1,
            wait_time_seconds=self.config.wait_time_seconds,
            visibility_timeout=self.config.visibility_timeout,
        )

        if not messages:
            self.consecutive_empty += 1
            if self.consecutive_empty % self.config.idle_log_every == 0:
                logger.info("No messages received (%d empty polls)", self.consecutive_empty)
            else:
                logger.debug("No messages received")
            return []

        self.consecutive_empty = 0

        results = []
        for msg in messages:
            try:
                result = self.handle_message(msg)
            except Exception as e:
                logger.exception("Message %s: unhandled error", msg.get('MessageId', 'unknown'))
                result = JobResult(msg.get('MessageId', 'unknown'), JobStatus.FAILED, error=str(e))
            self.stats[result.status.value] += 1
            results.append(result)

        return results

    def run(self, max_polls: Optional[int] = None):
        """
        Main worker loop - poll SQS until stopped (or max_polls receive calls).
        """
        logger.info("Starting effects worker...")
        logger.info("  Queue URL: %s", self.queue_url)
        logger.info("  Default bucket: %s", self.config.bucket)
        logger.info("  Presets: %s (revision %d)", ', '.join(self.presets.names()), self.presets.version)
        logger.info("  Transform timeout: %ss", self.config.ffmpeg_timeout)

        polls = 0
        while not self._stop_requested and (max_polls is None or polls < max_polls):
            polls += 1
            try:
                self.poll_once()

            except KeyboardInterrupt:
                logger.info("Shutting down effects worker...")
                break

            except Exception as e:
                logger.exception("Worker error: %s", e)
                self._sleep(self.config.error_backoff_seconds)

        if self._stop_requested:
            logger.info("Stop requested, leaving the poll loop")

        logger.info("Effects worker stopped (%d succeeded, %d failed, %d invalid)",
                    self.stats['succeeded'], self.stats['failed'], self.stats['invalid'])


def create_worker(config: WorkerConfig) -> EffectWorker:
    """
    Build a worker from configuration, checking startup requirements.

    Raises:
        ConfigError: ffmpeg missing or preset file unreadable
    """
    check_binary(config.ffmpeg_binary)

    if config.preset_file:
        presets = PresetRegistry.from_file(config.preset_file)
    else:
        presets = PresetRegistry()

    sqs = get_sqs_client(config.aws_region)
    s3 = get_s3_client(config.aws_region, config.s3_endpoint_url)

    queue_url = config.queue_url or get_or_create_queue(
        sqs, config.queue_name, visibility_timeout=config.visibility_timeout
    )

    return EffectWorker(config, sqs, s3, presets, queue_url=queue_url)


def install_signal_handlers(worker: EffectWorker):
    """SIGTERM stops after the current job; SIGHUP reloads presets."""
    def _on_term(signum, frame):
        worker.stop()

    def _on_hup(signum, frame):
        worker.request_preset_reload()

    signal.signal(signal.SIGTERM, _on_term)
    if hasattr(signal, 'SIGHUP'):
        signal.signal(signal.SIGHUP, _on_hup)


def run_effect_worker(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Video effects queue worker')
    parser.add_argument('--preset-file', type=str, default=None,
                        help='JSON preset definitions (overrides EFFECTS_PRESET_FILE)')
    parser.add_argument('--max-polls', type=int, default=None,
                        help='Stop after this many receive calls (default: run forever)')
    parser.add_argument('--log-level', type=str, default=None,
                        help='Logging level (overrides LOG_LEVEL)')
    args = parser.parse_args(argv)

    try:
        config = load_config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    config = config.with_overrides(preset_file=args.preset_file,
                                   log_level=args.log_level.upper() if args.log_level else None)
    setup_logging(config.log_level, config.log_file)

    try:
        worker = create_worker(config)
    except ConfigError as e:
        logger.critical("Startup failed: %s", e)
        return 1

    install_signal_handlers(worker)
    worker.run(max_polls=args.max_polls)
    return 0


if __name__ == '__main__':
    sys.exit(run_effect_worker())
