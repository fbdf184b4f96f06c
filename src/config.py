"""
SQRL Client Configuration

Connection settings for the test client and the shared logging setup.
Settings can be given directly or read from SQRLUA_* environment variables.
"""

import os
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

NUT_PROVIDERS = ('self', 'java', 'dotnet')


@dataclass
class ClientConfig:
    """Where the SQRL API lives and how the session is bootstrapped"""
    scheme: str = 'http'
    host: str = 'localhost:8000'
    root_path: str = ''
    nut_provider: str = 'self'
    log_bodies: bool = False

    def __post_init__(self):
        if self.nut_provider not in NUT_PROVIDERS:
            raise ValueError(
                f"Unknown nut provider {self.nut_provider!r}, "
                f"expected one of {', '.join(NUT_PROVIDERS)}"
            )
        self.root_path = self.root_path.rstrip('/')

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ClientConfig':
        """Build a config from SQRLUA_* variables, falling back to defaults"""
        env = os.environ if environ is None else environ
        return cls(
            scheme=env.get('SQRLUA_SCHEME', cls.scheme),
            host=env.get('SQRLUA_HOST', cls.host),
            root_path=env.get('SQRLUA_PATH', cls.root_path),
            nut_provider=env.get('SQRLUA_NUT_PROVIDER', cls.nut_provider),
            log_bodies=_env_flag(env.get('SQRLUA_LOG_BODIES')),
        )


def _env_flag(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def setup_logging(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configure a named logger, attaching the stream handler only once.

    Loggers are shared by name, so the level is only ever lowered: a later
    caller asking for INFO does not silence one that enabled DEBUG.
    """
    logger = logging.getLogger(name)
    if logger.level == logging.NOTSET or level < logger.level:
        logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
