"""Exception types raised by the DeepRep engine and its collaborators."""


class DeepRepError(Exception):
    """Base class for all DeepRep errors."""


class ValidationError(DeepRepError):
    """Caller-supplied input is out of bounds. Never corrected silently."""


class InvalidTemplateError(ValidationError):
    """Template name or exercise count is out of bounds."""


class AiPlanError(DeepRepError):
    """The AI provider returned an unusable plan."""


class StoreError(DeepRepError):
    """A backing store operation failed."""
