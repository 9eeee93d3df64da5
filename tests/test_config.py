import pytest

from util.config import load_config
from workers.errors import ConfigError

BASE_ENV = {
    'EFFECTS_BUCKET': 'videos',
    'EFFECTS_QUEUE_URL': 'https://sqs.eu-west-1.amazonaws.com/1/video-effects-jobs',
}


def test_defaults():
    config = load_config(BASE_ENV)

    assert config.bucket == 'videos'
    assert config.aws_region == 'us-east-1'
    assert config.wait_time_seconds == 20
    assert config.ffmpeg_binary == 'ffmpeg'
    assert config.ffmpeg_timeout == 1800.0
    assert config.preset_file is None
    assert config.log_file == 'logs/effect_worker.log'


def test_overrides_from_env():
    config = load_config({
        **BASE_ENV,
        'AWS_REGION': 'eu-west-1',
        'SQS_WAIT_TIME_SECONDS': '5',
        'FFMPEG_TIMEOUT_SECONDS': '600',
        'EFFECTS_PRESET_FILE': '/etc/effects/presets.json',
        'LOG_LEVEL': 'debug',
        'LOG_FILE': '',
    })

    assert config.aws_region == 'eu-west-1'
    assert config.wait_time_seconds == 5
    assert config.ffmpeg_timeout == 600.0
    assert config.job_visibility_timeout == 900
    assert config.preset_file == '/etc/effects/presets.json'
    assert config.log_level == 'DEBUG'
    assert config.log_file is None


def test_wait_time_is_clamped_to_sqs_maximum():
    assert load_config({**BASE_ENV, 'SQS_WAIT_TIME_SECONDS': '60'}).wait_time_seconds == 20


def test_queue_name_used_when_url_missing():
    config = load_config({'EFFECTS_BUCKET': 'videos', 'EFFECTS_QUEUE_NAME': 'fx'})

    assert config.queue_url is None
    assert config.queue_name == 'fx'


def test_bucket_is_required():
    with pytest.raises(ConfigError):
        load_config({'EFFECTS_QUEUE_URL': BASE_ENV['EFFECTS_QUEUE_URL']})


@pytest.mark.parametrize('key,value', [
    ('SQS_WAIT_TIME_SECONDS', 'soon'),
    ('SQS_VISIBILITY_TIMEOUT', '0'),
    ('FFMPEG_TIMEOUT_SECONDS', '0'),
    ('FFMPEG_TIMEOUT_SECONDS', '-5'),
    ('ERROR_BACKOFF_SECONDS', 'later'),
])
def test_invalid_values_raise(key, value):
    with pytest.raises(ConfigError):
        load_config({**BASE_ENV, key: value})


def test_with_overrides_ignores_none():
    config = load_config(BASE_ENV).with_overrides(preset_file=None, log_level='WARNING')

    assert config.preset_file is None
    assert config.log_level == 'WARNING'
