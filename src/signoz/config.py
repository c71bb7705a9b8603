"""
SigNoz API configuration

Handles environment variables, authentication headers, and base URL
configuration for the SigNoz API.
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class SignozConfig:
    """Connection settings handed to the HTTP client as-is."""
    base_url: str
    api_key: str
    timeout: float = DEFAULT_TIMEOUT

    def masked_api_key(self) -> str:
        """API key trimmed for logging."""
        if not self.api_key:
            return "Not configured"
        return f"Configured ({self.api_key[:10]}...)"


def get_signoz_config() -> SignozConfig:
    """
    Get SigNoz API configuration from environment variables.

    Returns:
        SignozConfig built from SIGNOZ_BASE_URL, SIGNOZ_API_KEY and SIGNOZ_TIMEOUT
    """
    base_url = os.getenv("SIGNOZ_BASE_URL", "") or DEFAULT_BASE_URL
    api_key = os.getenv("SIGNOZ_API_KEY", "")

    try:
        timeout = float(os.getenv("SIGNOZ_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        timeout = DEFAULT_TIMEOUT

    return SignozConfig(base_url=base_url.rstrip("/"), api_key=api_key, timeout=timeout)


def validate_signoz_config(config: Optional[SignozConfig] = None) -> Optional[str]:
    """
    Validate SigNoz API configuration.

    Returns:
        Warning message if configuration is incomplete, None if valid
    """
    config = config or get_signoz_config()

    if not config.api_key:
        return "Warning: SIGNOZ_API_KEY is not set. Requests to SigNoz will likely be rejected."

    return None


def get_signoz_headers(config: SignozConfig, additional_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Get SigNoz API headers with optional additional headers.

    Args:
        config: Connection settings
        additional_headers: Optional additional headers to merge

    Returns:
        Complete headers dictionary for API requests
    """
    headers = {"SIGNOZ-API-KEY": config.api_key}

    if additional_headers:
        headers.update(additional_headers)

    return headers
