"""Process-scoped restoration settings and host key selection."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol, Union

from timeprint.utils.secrets import load_secrets
from timeprint.utils.timeout import DEFAULT_TIMEOUT_MS

logger = logging.getLogger(__name__)


class RestorationMode(str, Enum):
    """Which remote model configuration restoration calls use."""

    STANDARD = "standard"
    ULTRA = "ultra"


class KeySelector(Protocol):
    """Host facility that lets the user pick an API key."""

    def has_selected_api_key(self) -> bool:
        ...

    def open_select_key(self) -> None:
        ...


class EnvironmentKeySelector:
    """Key selector backed by secrets.json and the environment.

    There is no interactive picker outside a hosted UI, so ``open_select_key``
    just re-reads the secrets and fails if nothing is configured.
    """

    def __init__(self, secrets_path: Optional[Path] = None) -> None:
        self.secrets_path = secrets_path

    def has_selected_api_key(self) -> bool:
        return load_secrets(self.secrets_path).gemini_api_key is not None

    def open_select_key(self) -> None:
        if not self.has_selected_api_key():
            raise LookupError(
                "No API key configured. Set API_KEY or GEMINI_API_KEY, "
                "or add it to secrets.json."
            )


@dataclass
class SessionSettings:
    """All process-wide state the orchestrator reads, in one place."""

    # Read when each restoration call is issued, not snapshotted per batch
    mode: RestorationMode = RestorationMode.STANDARD

    # None until checked; only downgraded by the orchestrator on auth failure
    has_api_key: Optional[bool] = None

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    secrets_path: Optional[Path] = None

    def select_mode(self, mode: Union[RestorationMode, str]) -> RestorationMode:
        """Switch the restoration mode for all subsequent calls.

        Raises:
            ValueError: If ``mode`` is not a known mode name.
        """
        self.mode = RestorationMode(mode)
        logger.info(f"Restoration mode set to {self.mode.value}")
        return self.mode

    def refresh_credentials(self, selector: KeySelector) -> Optional[bool]:
        """Re-check whether an API key is available.

        A selector failure is logged and leaves the flag as it was.
        """
        try:
            self.has_api_key = bool(selector.has_selected_api_key())
        except Exception as e:
            logger.error(f"Failed to check API key status: {e}")
        return self.has_api_key

    def select_key(self, selector: KeySelector) -> Optional[bool]:
        """Ask the host to select a key, then mark the credential available."""
        try:
            selector.open_select_key()
        except Exception as e:
            logger.error(f"Failed to open API key selector: {e}")
            return self.has_api_key
        self.has_api_key = True
        return self.has_api_key
