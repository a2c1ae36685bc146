"""Domain-specific errors for thingctl."""


class ThingctlError(Exception):
    """Base error for thingctl."""


class DefinitionValidationError(ThingctlError):
    """Raised when a device definition does not conform to schema or semantics."""


class DefinitionLoadError(ThingctlError):
    """Raised when reading device definition sources fails."""


class ConfigError(ThingctlError):
    """Raised when the settings file is unreadable or invalid."""


class SelectionError(ThingctlError):
    """Raised when a selector resolves to no devices."""


class ArgumentError(ThingctlError):
    """Raised when a command is missing a required argument."""


class ActionError(ThingctlError):
    """Raised by a device when an action fails."""


class ActionNotFoundError(ActionError):
    """Raised when a device does not expose the requested action."""


class ActionTimeoutError(ActionError):
    """Raised when an action does not finish in time."""


class TransportError(ThingctlError):
    """Base registry-level error; fails the whole command."""


class MetadataStoreError(TransportError):
    """Raised when the metadata store cannot be read or written."""
