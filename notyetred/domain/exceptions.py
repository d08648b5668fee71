class SignalConfigError(Exception):
    """Base exception for all signal configuration errors."""
    pass

class ConfigurationError(SignalConfigError, ValueError):
    """Raised when settings are invalid."""
    pass

class EmptyCycleError(ConfigurationError):
    """Raised when a light has no phase time to cycle through."""
    pass

class UnsatisfiableCycleError(ConfigurationError):
    """Raised when phases cannot be rescaled to the requested cycle length."""
    pass

class LightNotFoundError(SignalConfigError, LookupError):
    """Raised when a light index does not exist in the intersection."""
    pass
