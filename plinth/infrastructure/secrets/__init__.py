"""Secret-store clients used while loading configuration."""

from plinth.infrastructure.secrets.vault import VaultClient

__all__ = ["VaultClient"]
