"""
Server settings, read from the environment and passed to the server at startup.
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Tuple

from parse_screp import DEFAULT_PARSE_TIMEOUT, DEFAULT_SCREP_PATH
from replay_analyzers import PROFILES

DEFAULT_PORT = 9090


@dataclass(frozen=True)
class ServerConfig:
    host: str = ''
    port: int = DEFAULT_PORT
    screp_path: str = DEFAULT_SCREP_PATH
    parse_timeout: float = DEFAULT_PARSE_TIMEOUT
    profile: str = 'full'
    cors_origins: Tuple[str, ...] = ('*',)
    upload_field: str = 'file'

    def __post_init__(self):
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}")
        if self.parse_timeout <= 0:
            raise ValueError(f"Invalid parse timeout: {self.parse_timeout}")
        if self.profile not in PROFILES:
            raise ValueError(f"Unknown profile {self.profile!r} (expected one of: {', '.join(sorted(PROFILES))})")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ServerConfig':
        """Build a config from REPLAY_TIMELINE_* / SCREP_PATH variables."""
        env = os.environ if environ is None else environ
        kwargs = {}
        if env.get('REPLAY_TIMELINE_HOST') is not None:
            kwargs['host'] = env['REPLAY_TIMELINE_HOST']
        if env.get('REPLAY_TIMELINE_PORT'):
            kwargs['port'] = int(env['REPLAY_TIMELINE_PORT'])
        if env.get('SCREP_PATH'):
            kwargs['screp_path'] = env['SCREP_PATH']
        if env.get('REPLAY_TIMELINE_PARSE_TIMEOUT'):
            kwargs['parse_timeout'] = float(env['REPLAY_TIMELINE_PARSE_TIMEOUT'])
        if env.get('REPLAY_TIMELINE_PROFILE'):
            kwargs['profile'] = env['REPLAY_TIMELINE_PROFILE']
        if env.get('REPLAY_TIMELINE_CORS_ORIGINS'):
            origins = tuple(o.strip() for o in env['REPLAY_TIMELINE_CORS_ORIGINS'].split(',') if o.strip())
            kwargs['cors_origins'] = origins
        return cls(**kwargs)

    def override(self, **changes) -> 'ServerConfig':
        """Copy with the given non-None values replaced (for command line flags)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
