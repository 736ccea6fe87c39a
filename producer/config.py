"""Configuration settings for the Producer."""

import os

from pydantic import BaseModel, Field

from common.constants import DEFAULT_PORT, UPLOAD_PATH
from common.utils import env_flag


class ProducerConfig(BaseModel):
    """Settings for the chunk uploader."""

    url: str = f"https://127.0.0.1:{DEFAULT_PORT}{UPLOAD_PATH}"
    timeout: float = Field(30.0, gt=0)
    # Collectors run with self-provisioned certificates
    verify_tls: bool = False
    http2: bool = True

    @classmethod
    def from_env(cls) -> 'ProducerConfig':
        """
        Build configuration from CHUNKUP_* environment variables.

        Returns:
            ProducerConfig instance

        Raises:
            pydantic.ValidationError: If a value is malformed or out of range
        """
        defaults = cls()
        return cls(
            url=os.environ.get("CHUNKUP_URL", defaults.url),
            timeout=os.environ.get("CHUNKUP_TIMEOUT", defaults.timeout),
            verify_tls=env_flag("CHUNKUP_VERIFY_TLS", defaults.verify_tls),
            http2=env_flag("CHUNKUP_HTTP2", defaults.http2),
        )
