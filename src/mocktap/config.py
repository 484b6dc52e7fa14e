"""
MockTap Configuration

Interceptor settings loaded from code, environment variables or YAML.
"""

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, TextIO

import yaml

from .exceptions import MockConfigurationError


_TRUE_VALUES = {'1', 'true', 'yes', 'on'}


@dataclass
class InterceptorConfig:
    """Configuration for interceptor behavior."""

    # Debug dumping of every exchange as wire text
    debug: bool = False
    debug_stream: Optional[TextIO] = None  # None writes to sys.stderr

    # Level for the 'mocktap' logger (None leaves it untouched)
    log_level: Optional[str] = None

    # Exchange recording on the installation handle
    record_exchanges: bool = True
    recording_limit: int = 1000  # 0 = unlimited

    def apply_log_level(self) -> Optional[int]:
        """
        Set the level of the 'mocktap' logger if one is configured.

        Returns:
            The logger's previous level, or None if nothing was changed
        """
        if not self.log_level:
            return None
        level = getattr(logging, self.log_level.upper(), None)
        if not isinstance(level, int):
            raise MockConfigurationError(f"Unknown log level: {self.log_level}")
        logger = logging.getLogger("mocktap")
        previous = logger.level
        logger.setLevel(level)
        return previous

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InterceptorConfig':
        """
        Create config from dictionary, ignoring debug_stream.

        Raises:
            MockConfigurationError: On unknown keys
        """
        known = {f.name for f in fields(cls)} - {'debug_stream'}
        unknown = set(data) - known
        if unknown:
            raise MockConfigurationError(f"Unknown interceptor settings: {sorted(unknown)}")

        config = cls()
        if 'debug' in data:
            config.debug = bool(data['debug'])
        if 'log_level' in data:
            config.log_level = data['log_level']
        if 'record_exchanges' in data:
            config.record_exchanges = bool(data['record_exchanges'])
        if 'recording_limit' in data:
            config.recording_limit = int(data['recording_limit'])
        return config

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'InterceptorConfig':
        """
        Load config from the 'interceptor' section of a YAML file.

        A file without that section yields the defaults.
        """
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise MockConfigurationError(f"Expected a mapping in {yaml_path}")
        return cls.from_dict(data.get('interceptor') or {})

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> 'InterceptorConfig':
        """
        Create config from environment variables.

        Reads MOCKTAP_DEBUG, MOCKTAP_LOG_LEVEL and MOCKTAP_RECORDING_LIMIT.
        """
        env = os.environ if env is None else env
        config = cls()
        if 'MOCKTAP_DEBUG' in env:
            config.debug = env['MOCKTAP_DEBUG'].strip().lower() in _TRUE_VALUES
        if env.get('MOCKTAP_LOG_LEVEL'):
            config.log_level = env['MOCKTAP_LOG_LEVEL']
        if env.get('MOCKTAP_RECORDING_LIMIT'):
            try:
                config.recording_limit = int(env['MOCKTAP_RECORDING_LIMIT'])
            except ValueError as e:
                raise MockConfigurationError(
                    f"MOCKTAP_RECORDING_LIMIT must be an integer: {env['MOCKTAP_RECORDING_LIMIT']!r}"
                ) from e
        return config
