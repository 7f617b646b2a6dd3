"""Exceptions raised by changewatch."""


class ChangewatchError(Exception):
    """Base class for changewatch errors."""


class ProviderConfigurationError(ChangewatchError):
    """The selected LLM provider is unknown or missing credentials."""


class SnapshotNotFoundError(ChangewatchError):
    """One or both requested snapshots do not exist."""
