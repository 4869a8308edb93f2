class WellCheckError(Exception):
    """Base class for all well constraint evaluation errors."""

    pass


class ValidationError(WellCheckError, ValueError):
    """Raised when input data fails validation checks."""

    pass


class PhaseError(ValidationError):
    """Raised when an inactive fluid phase is dereferenced."""

    pass


class EvaluationError(WellCheckError):
    """Base class for errors raised while evaluating well constraints."""

    pass


class InjectorTypeError(EvaluationError):
    """
    Raised when an injector declares a fluid type other than water, oil or gas.

    This is a fatal input error. Evaluation of the current step must not continue.
    """

    pass
