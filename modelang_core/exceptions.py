class ModelError(Exception):
    """Base exception for the model builder."""
    pass


class ConfigurationError(ModelError):
    """Raised for malformed annotations and dangling data references."""
    pass


class CastTypeError(ModelError):
    """Raised when a value or implementation does not fit its declared type."""
    pass


class ResolutionError(ModelError):
    """Raised when a type name cannot be found in the catalog."""
    pass


class InputError(ModelError):
    """Raised for unknown inputs and failed post-construction validation."""
    pass


class DataLoadError(ModelError):
    """Raised when the data loader cannot read or parse a file."""
    pass
