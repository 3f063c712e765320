"""Unified secrets loader for the Gemini API key."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_SECRETS_FILE = Path(__file__).parent.parent.parent / "secrets.json"


@dataclass
class Secrets:
    """Loaded API keys.

    ``selected_api_key`` is a key the user picked explicitly (``API_KEY``);
    ``default_api_key`` is the platform-provided one (``GEMINI_API_KEY``).
    """

    selected_api_key: Optional[str] = None
    default_api_key: Optional[str] = None

    @property
    def gemini_api_key(self) -> Optional[str]:
        """Key to use for calls: the user's selection wins over the platform default."""
        return self.selected_api_key or self.default_api_key


def load_secrets(secrets_path: Optional[Path] = None) -> Secrets:
    """Load API keys from secrets.json, falling back to environment variables.

    Priority: secrets.json > environment variables.

    Args:
        secrets_path: Path to secrets.json. Defaults to project root secrets.json.

    Returns:
        Secrets dataclass with available keys (None for missing keys).
    """
    path = secrets_path or _SECRETS_FILE
    data: dict = {}

    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            logger.debug(f"Loaded secrets from {path}")
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read secrets.json at {path}: {e}")

    def _get(data: dict, *keys: str, env_var: str = "") -> Optional[str]:
        for k in keys:
            v = data.get(k)
            if isinstance(v, str) and v.strip():
                return v.strip()
        # Fall back to environment variable
        if env_var:
            v = os.getenv(env_var, "")
            if v.strip():
                return v.strip()
        return None

    selected_key = _get(data, "API_KEY", "api_key", env_var="API_KEY")
    default_key = _get(
        data,
        "GEMINI_API_KEY", "gemini_api_key",
        env_var="GEMINI_API_KEY",
    )

    if not selected_key and not default_key:
        logger.debug("Neither API_KEY nor GEMINI_API_KEY found in secrets.json or environment")

    return Secrets(selected_api_key=selected_key, default_api_key=default_key)
