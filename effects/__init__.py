"""
Effect presets and the ffmpeg transform runner.
"""

from .presets import (
    DEFAULT_EFFECT,
    BUILTIN_PRESETS,
    Preset,
    PresetRegistry,
    build_command,
)
from .transform import TransformResult, run_transform, check_binary

__all__ = [
    'DEFAULT_EFFECT',
    'BUILTIN_PRESETS',
    'Preset',
    'PresetRegistry',
    'build_command',
    'TransformResult',
    'run_transform',
    'check_binary',
]
