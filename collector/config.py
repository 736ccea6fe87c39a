"""Configuration settings for the Collector server."""

import os
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from common.constants import DEFAULT_PORT, SHUTDOWN_GRACE_PERIOD_SECONDS, UPLOAD_PATH
from common.utils import env_flag

_HOSTNAME_RE = re.compile(
    r'^(?=.{1,253}$)([a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$'
)
_IPV4_RE = re.compile(r'^((25[0-5]|2[0-4]\d|1?\d?\d)\.){3}(25[0-5]|2[0-4]\d|1?\d?\d)$')


class CollectorConfig(BaseModel):
    """Settings for the upload server."""

    host: str = "0.0.0.0"
    port: int = Field(DEFAULT_PORT, ge=1024, le=65535)
    debug: bool = False
    storage_path: Path = Path("storage")
    ssl_certfile: Optional[str] = "cert.pem"
    ssl_keyfile: Optional[str] = "key.pem"
    grace_period: float = Field(SHUTDOWN_GRACE_PERIOD_SECONDS, gt=0)
    upload_path: str = UPLOAD_PATH

    @field_validator('host')
    @classmethod
    def validate_host(cls, value: str) -> str:
        if not (_IPV4_RE.match(value) or _HOSTNAME_RE.match(value)):
            raise ValueError(f"'{value}' is neither a hostname nor an IPv4 address")
        return value

    @property
    def tls_enabled(self) -> bool:
        return bool(self.ssl_certfile and self.ssl_keyfile)

    @classmethod
    def from_env(cls) -> 'CollectorConfig':
        """
        Build configuration from CHUNKUP_* environment variables.

        An empty CHUNKUP_SSL_CERTFILE or CHUNKUP_SSL_KEYFILE disables TLS.

        Returns:
            CollectorConfig instance

        Raises:
            pydantic.ValidationError: If a value is malformed or out of range
        """
        defaults = cls()
        return cls(
            host=os.environ.get("CHUNKUP_HOST", defaults.host),
            port=os.environ.get("CHUNKUP_PORT", defaults.port),
            debug=env_flag("CHUNKUP_DEBUG", defaults.debug),
            storage_path=Path(os.environ.get("CHUNKUP_STORAGE_PATH", defaults.storage_path)),
            ssl_certfile=os.environ.get("CHUNKUP_SSL_CERTFILE", defaults.ssl_certfile) or None,
            ssl_keyfile=os.environ.get("CHUNKUP_SSL_KEYFILE", defaults.ssl_keyfile) or None,
            grace_period=os.environ.get("CHUNKUP_GRACE_PERIOD", defaults.grace_period),
        )
