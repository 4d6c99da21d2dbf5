"""HashiCorp Vault KV v2 client.

Secrets are fetched once while configuration is assembled, before the event
loop starts serving requests, so the client is synchronous.
"""

from typing import Any

import httpx
from loguru import logger

from plinth.core.config import VaultConfig
from plinth.core.exceptions import ConfigurationError

VAULT_TOKEN_HEADER = "X-Vault-Token"


class VaultClient:
    """Reads one KV v2 secret bundle.

    Args:
        config: Vault configuration.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: VaultConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.transport = transport

    def read_secret(self) -> dict[str, Any]:
        """Fetch the key/value bundle stored at the configured path.

        Returns:
            dict[str, Any]: The secret's ``data.data`` mapping.

        Raises:
            ConfigurationError: If the request fails or the secret is missing.
        """
        try:
            with httpx.Client(
                transport=self.transport,
                timeout=self.config.timeout,
                headers={VAULT_TOKEN_HEADER: self.config.token},
            ) as client:
                response = client.get(self.config.secret_url)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ConfigurationError(f"Failed to fetch secrets from Vault: {e}") from e

        data = payload.get("data") if isinstance(payload, dict) else None
        secrets = data.get("data") if isinstance(data, dict) else None
        if not isinstance(secrets, dict):
            raise ConfigurationError("Secret not found in Vault")

        logger.info(
            "Loaded {} secrets from Vault path {}/{}",
            len(secrets),
            self.config.mount_path,
            self.config.secret_path,
        )
        return secrets
