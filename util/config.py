"""
Worker configuration, read from the environment once at startup.

Environment variables (a .env file next to the project root is loaded first):
    EFFECTS_QUEUE_URL        SQS queue URL (or EFFECTS_QUEUE_NAME to look it up)
    EFFECTS_QUEUE_NAME       SQS queue name (default: video-effects-jobs)
    EFFECTS_BUCKET           Default S3 bucket for jobs without one (required)
    AWS_REGION               AWS region (default: us-east-1)
    S3_ENDPOINT_URL          Custom S3 endpoint, e.g. MinIO (optional)
    SQS_WAIT_TIME_SECONDS    Long polling wait time, 0-20 (default: 20)
    SQS_VISIBILITY_TIMEOUT   Visibility timeout on receive (default: 900)
    FFMPEG_BINARY            ffmpeg executable (default: ffmpeg)
    FFMPEG_TIMEOUT_SECONDS   Max transform duration (default: 1800)
    EFFECTS_PRESET_FILE      JSON preset definitions (optional)
    PRESET_RELOAD_INTERVAL   Seconds between preset file checks (default: 60)
    WORKER_TMP_DIR           Parent dir for job temp files (default: system temp)
    LOG_FILE                 Append-only log file (default: logs/effect_worker.log)
    LOG_LEVEL                Logging level (default: INFO)
    ERROR_BACKOFF_SECONDS    Sleep after a loop-level error (default: 5)
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from dotenv import load_dotenv

from workers.errors import ConfigError

DEFAULT_QUEUE_NAME = 'video-effects-jobs'
MAX_WAIT_TIME_SECONDS = 20


@dataclass(frozen=True)
class WorkerConfig:
    bucket: str
    queue_url: Optional[str] = None
    queue_name: str = DEFAULT_QUEUE_NAME
    aws_region: str = 'us-east-1'
    s3_endpoint_url: Optional[str] = None
    wait_time_seconds: int = 20
    visibility_timeout: int = 900
    ffmpeg_binary: str = 'ffmpeg'
    ffmpeg_timeout: float = 1800.0
    preset_file: Optional[str] = None
    preset_reload_interval: float = 60.0
    tmp_dir: Optional[str] = None
    log_file: Optional[str] = 'logs/effect_worker.log'
    log_level: str = 'INFO'
    error_backoff_seconds: float = 5.0
    idle_log_every: int = 10

    @property
    def job_visibility_timeout(self) -> int:
        """Visibility needed to cover one job: transform timeout plus transfer margin."""
        return int(self.ffmpeg_timeout) + 300

    def with_overrides(self, **changes) -> 'WorkerConfig':
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got '{raw}'")


def _get_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == '':
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got '{raw}'")
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {value}")
    return value


def load_config(env: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None) -> WorkerConfig:
    """
    Build the worker configuration from environment variables.

    Args:
        env: Mapping to read instead of os.environ (no .env loading then)
        dotenv_path: Explicit .env file to load before reading os.environ

    Returns:
        WorkerConfig

    Raises:
        ConfigError: required values are missing or malformed
    """
    if env is None:
        if dotenv_path:
            load_dotenv(dotenv_path)
        else:
            load_dotenv(os.path.join(os.path.dirname(__file__), '..', '.env'))
            load_dotenv(os.path.join(os.path.dirname(__file__), '..', 'deploy', '.env'))
        env = os.environ

    bucket = env.get('EFFECTS_BUCKET', '').strip()
    if not bucket:
        raise ConfigError("EFFECTS_BUCKET is required")

    queue_url = env.get('EFFECTS_QUEUE_URL', '').strip() or None
    queue_name = env.get('EFFECTS_QUEUE_NAME', '').strip() or DEFAULT_QUEUE_NAME

    wait_time = _get_int(env, 'SQS_WAIT_TIME_SECONDS', 20)
    wait_time = max(0, min(wait_time, MAX_WAIT_TIME_SECONDS))

    visibility_timeout = _get_int(env, 'SQS_VISIBILITY_TIMEOUT', 900)
    if visibility_timeout <= 0:
        raise ConfigError("SQS_VISIBILITY_TIMEOUT must be positive")

    ffmpeg_timeout = _get_float(env, 'FFMPEG_TIMEOUT_SECONDS', 1800.0)
    if ffmpeg_timeout == 0:
        raise ConfigError("FFMPEG_TIMEOUT_SECONDS must be positive")

    return WorkerConfig(
        bucket=bucket,
        queue_url=queue_url,
        queue_name=queue_name,
        aws_region=env.get('AWS_REGION', 'us-east-1'),
        s3_endpoint_url=env.get('S3_ENDPOINT_URL') or None,
        wait_time_seconds=wait_time,
        visibility_timeout=visibility_timeout,
        ffmpeg_binary=env.get('FFMPEG_BINARY') or 'ffmpeg',
        ffmpeg_timeout=ffmpeg_timeout,
        preset_file=env.get('EFFECTS_PRESET_FILE') or None,
        preset_reload_interval=_get_float(env, 'PRESET_RELOAD_INTERVAL', 60.0),
        tmp_dir=env.get('WORKER_TMP_DIR') or None,
        log_file=env.get('LOG_FILE', 'logs/effect_worker.log') or None,
        log_level=(env.get('LOG_LEVEL') or 'INFO').upper(),
        error_backoff_seconds=_get_float(env, 'ERROR_BACKOFF_SECONDS', 5.0),
    )
