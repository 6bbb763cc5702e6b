"""
Custom Exception Classes for Cloud Config

Hierarchical exception structure shared by the config server and its clients.
"""


class CloudConfigError(Exception):
    """Base exception for all cloud config errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(CloudConfigError):
    """Property lookup and parsing errors"""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(f"Config Error: {message}", recoverable)


class PropertyNotFoundError(ConfigError):
    """A required property has no value in any property source"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Property not found: {key}", recoverable=False)


class PropertyResolutionError(ConfigError):
    """A placeholder could not be resolved (missing key or cycle)"""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Could not resolve placeholder '{key}': {reason}", recoverable=False)


class PropertySourceError(ConfigError):
    """A property file could not be parsed"""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid property source {source}: {reason}", recoverable=False)


class RepositoryError(CloudConfigError):
    """Config repository lookup errors"""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(f"Repository Error: {message}", recoverable)


class LabelNotFoundError(RepositoryError):
    """Requested label does not exist in the config repository"""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"No such label: {label}")


class InvalidRequestError(RepositoryError):
    """Application, profile or label name is not acceptable"""

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class SyncError(CloudConfigError):
    """Errors fetching configuration from the config server"""

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        super().__init__(f"Sync Error: {message}", recoverable=True)


class ConfigServerUnavailableError(SyncError):
    """Config server could not be reached after all retry attempts"""

    def __init__(self, uri: str, attempts: int, reason: str = ""):
        self.uri = uri
        self.attempts = attempts
        message = f"Could not reach config server at {uri} after {attempts} attempt(s)"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, operation="fetch")


class ConfigFetchError(SyncError):
    """Config server answered, but not with a usable environment"""

    def __init__(self, uri: str, status_code: int | None = None, reason: str = ""):
        self.uri = uri
        self.status_code = status_code
        message = f"Bad response from {uri}"
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, operation="fetch")
