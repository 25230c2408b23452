"""Local signing secret.

A 256-bit random key generated once per installation and kept in the
config directory. Losing it invalidates every previously signed plan.
"""

import logging
import os
import secrets
from pathlib import Path

logger = logging.getLogger(__name__)

SECRET_FILE_NAME = "secret.hex"
SECRET_BYTES = 32


class SecretError(Exception):
    """The stored secret is unreadable or malformed."""

    pass


def ensure_secret(config_dir: Path | str) -> bytes:
    """Load the installation secret, creating it on first use.

    Args:
        config_dir: Directory holding ``secret.hex`` (created with mode 0700)

    Returns:
        The raw secret bytes

    Raises:
        SecretError: If an existing secret cannot be decoded or is too short
    """
    config_dir = Path(config_dir)
    config_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    secret_path = config_dir / SECRET_FILE_NAME

    if secret_path.exists():
        try:
            raw = bytes.fromhex(secret_path.read_text(encoding="ascii").strip())
        except ValueError as e:
            raise SecretError(f"invalid secret format in {secret_path}: {e}") from e
        except OSError as e:
            raise SecretError(f"cannot read secret {secret_path}: {e}") from e
        if len(raw) < SECRET_BYTES:
            raise SecretError(f"secret too short in {secret_path}")
        return raw

    raw = secrets.token_bytes(SECRET_BYTES)
    fd = os.open(secret_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w", encoding="ascii") as f:
        f.write(raw.hex() + "\n")
    logger.info("Generated new signing secret at %s", secret_path)
    return raw
