"""
Effect presets: named ffmpeg filter graphs and the command builder.

The built-in presets are static. A JSON preset file can replace them at
startup and be reloaded between jobs (on a timer or SIGHUP); each
successful reload bumps the registry version. A job resolves its preset
once, so a reload never changes a job that is already running.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from workers.errors import ConfigError, UnknownPresetError

logger = logging.getLogger(__name__)

DEFAULT_EFFECT = 'silent-movie'


@dataclass(frozen=True)
class Preset:
    name: str
    video_filter: str
    audio_filter: Optional[str] = None
    drop_audio: bool = False
    extra_args: Tuple[str, ...] = field(default_factory=tuple)


BUILTIN_PRESETS = {
    'silent-movie': Preset(
        name='silent-movie',
        video_filter=(
            'format=gray,curves=preset=increase_contrast,'
            'noise=alls=12:allf=t,vignette=PI/5,fps=18'
        ),
        drop_audio=True,
    ),
    'high-contrast': Preset(
        name='high-contrast',
        video_filter='eq=contrast=1.8:brightness=0.04:saturation=1.4,unsharp=5:5:0.8',
    ),
    'vintage': Preset(
        name='vintage',
        video_filter='curves=preset=vintage,vignette=PI/4,noise=alls=6:allf=t',
        audio_filter='highpass=f=300,lowpass=f=3400',
    ),
    'negative': Preset(
        name='negative',
        video_filter='negate',
    ),
    'mirror': Preset(
        name='mirror',
        video_filter='hflip',
    ),
    'blur': Preset(
        name='blur',
        video_filter='boxblur=luma_radius=6:luma_power=2',
    ),
}


def build_command(preset: Preset, input_path: str, output_path: str, binary: str = 'ffmpeg') -> List[str]:
    """Build the ffmpeg argv for applying a preset to one file."""
    cmd = [
        binary, '-y', '-hide_banner',
        '-i', input_path,
        '-vf', preset.video_filter,
    ]
    if preset.drop_audio:
        cmd.append('-an')
    elif preset.audio_filter:
        cmd.extend(['-af', preset.audio_filter])
    cmd.extend(preset.extra_args)
    cmd.extend(['-movflags', '+faststart', output_path])
    return cmd


def parse_preset_document(document) -> Tuple[str, Dict[str, Preset]]:
    """
    Validate a preset file document and build presets from it.

    Returns:
        (declared version, presets by name)

    Raises:
        ConfigError: malformed document
    """
    if not isinstance(document, dict):
        raise ConfigError("Preset file must contain a JSON object")

    entries = document.get('presets')
    if not isinstance(entries, dict) or not entries:
        raise ConfigError("Preset file needs a non-empty 'presets' object")

    presets = {}
    for name, entry in entries.items():
        if not isinstance(entry, dict):
            raise ConfigError(f"Preset '{name}' must be an object")
        video_filter = entry.get('video_filter')
        if not isinstance(video_filter, str) or not video_filter.strip():
            raise ConfigError(f"Preset '{name}' needs a non-empty 'video_filter'")
        audio_filter = entry.get('audio_filter')
        if audio_filter is not None and not isinstance(audio_filter, str):
            raise ConfigError(f"Preset '{name}': 'audio_filter' must be a string")
        extra_args = entry.get('extra_args', [])
        if not isinstance(extra_args, list) or not all(isinstance(a, str) for a in extra_args):
            raise ConfigError(f"Preset '{name}': 'extra_args' must be a list of strings")

        presets[name] = Preset(
            name=name,
            video_filter=video_filter,
            audio_filter=audio_filter or None,
            drop_audio=bool(entry.get('drop_audio', False)),
            extra_args=tuple(extra_args),
        )

    return str(document.get('version', '')), presets


class PresetRegistry:
    """
    Versioned snapshot of the available presets.

    Readers get an immutable mapping; reload() swaps the whole snapshot.
    """

    def __init__(self, presets: Optional[Mapping[str, Preset]] = None, path: Optional[str] = None,
                 default_effect: str = DEFAULT_EFFECT):
        self.path = path
        self.default_effect = default_effect
        self.version = 0
        self.declared_version = ''
        self._mtime = None
        self._presets = MappingProxyType(dict(presets if presets is not None else BUILTIN_PRESETS))

    @classmethod
    def from_file(cls, path: str, default_effect: str = DEFAULT_EFFECT) -> 'PresetRegistry':
        """Load a registry from a preset file. Errors here are fatal for the caller."""
        registry = cls(presets={}, path=path, default_effect=default_effect)
        registry._load()
        return registry

    @property
    def presets(self) -> Mapping[str, Preset]:
        return self._presets

    def names(self) -> List[str]:
        return sorted(self._presets)

    def resolve(self, name: Optional[str]) -> Preset:
        """
        Look up a preset by name (None means the default effect).

        Raises:
            UnknownPresetError: no preset with that name
        """
        snapshot = self._presets
        preset = snapshot.get(name or self.default_effect)
        if preset is None:
            raise UnknownPresetError(name or self.default_effect, snapshot.keys())
        return preset

    def _load(self):
        try:
            mtime = os.path.getmtime(self.path)
            with open(self.path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot read preset file {self.path}: {e}") from e

        declared_version, presets = parse_preset_document(document)
        self._presets = MappingProxyType(presets)
        self._mtime = mtime
        self.declared_version = declared_version
        self.version += 1

        logger.info("Loaded %d presets from %s (version %s, revision %d)",
                    len(presets), self.path, declared_version or '-', self.version)
        if self.default_effect not in presets:
            logger.warning("Default effect '%s' is not in %s; jobs without effect_type will be rejected",
                           self.default_effect, self.path)

    def reload(self) -> bool:
        """
        Re-read the preset file. A bad file is logged and the previous
        snapshot stays active.

        Returns:
            bool: True if a new snapshot was installed
        """
        if not self.path:
            return False
        try:
            self._load()
        except ConfigError as e:
            logger.error("Preset reload failed, keeping revision %d: %s", self.version, e)
            return False
        return True

    def reload_if_changed(self) -> bool:
        """Reload only when the preset file's mtime moved."""
        if not self.path:
            return False
        try:
            mtime = os.path.getmtime(self.path)
        except OSError as e:
            logger.error("Cannot stat preset file %s: %s", self.path, e)
            return False
        if mtime == self._mtime:
            return False
        return self.reload()
