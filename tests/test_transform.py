import subprocess

import pytest

from effects.transform import check_binary, run_transform
from workers.errors import ConfigError, TransformError, TransformTimeout


def test_success_returns_result(ffmpeg, tmp_path):
    output = tmp_path / 'out.mp4'

    result = run_transform(['ffmpeg', '-i', 'in.mp4', str(output)], timeout=5)

    assert result.returncode == 0
    assert output.exists()
    assert result.command_line.startswith('ffmpeg -i in.mp4')


def test_nonzero_exit_raises_with_diagnostics(ffmpeg, tmp_path):
    ffmpeg.returncode = 183
    ffmpeg.stderr = 'Error initializing filter'

    with pytest.raises(TransformError) as exc_info:
        run_transform(['ffmpeg', str(tmp_path / 'out.mp4')])

    assert exc_info.value.result.returncode == 183
    assert exc_info.value.result.stderr_tail() == 'Error initializing filter'
    assert not isinstance(exc_info.value, TransformTimeout)


def test_timeout_is_distinct_failure(ffmpeg, tmp_path):
    ffmpeg.timeout = True

    with pytest.raises(TransformTimeout) as exc_info:
        run_transform(['ffmpeg', str(tmp_path / 'out.mp4')], timeout=1.5)

    assert exc_info.value.timeout == 1.5
    assert exc_info.value.result.returncode is None
    assert 'frame=' in exc_info.value.result.stderr


def test_missing_binary_raises(monkeypatch):
    def not_found(*args, **kwargs):
        raise FileNotFoundError(2, 'No such file or directory')

    monkeypatch.setattr(subprocess, 'run', not_found)

    with pytest.raises(TransformError):
        run_transform(['no-such-ffmpeg', 'out.mp4'])


def test_stderr_tail_truncates():
    from effects.transform import TransformResult

    result = TransformResult(['ffmpeg'], 1, '', 'x' * 10 + 'END', 0.1)

    assert result.stderr_tail(3) == 'END'


def test_check_binary(monkeypatch):
    monkeypatch.setattr('effects.transform.shutil.which', lambda b: f'/usr/bin/{b}')
    assert check_binary('ffmpeg') == '/usr/bin/ffmpeg'

    monkeypatch.setattr('effects.transform.shutil.which', lambda b: None)
    with pytest.raises(ConfigError):
        check_binary('ffmpeg')
