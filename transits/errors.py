"""
Exceptions raised while resolving orbital parameters.

Every rule of the orbit parameter validation has its own exception class so
callers can tell the failures apart. All of them derive from
``OrbitValidationError``, which is itself a ``ValueError``.
"""


class OrbitValidationError(ValueError):
    """Base class for inconsistent or incomplete orbital parameter sets."""

    message = "Invalid orbital parameters"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)


class MissingReferenceTimeError(OrbitValidationError):
    message = "Please specify either `t0` or `tp`"


class DuplicateReferenceTimeError(OrbitValidationError):
    message = "Please only specify one of `t0` or `tp`"


class MissingScaleError(OrbitValidationError):
    message = "At least `a` or `P` must be specified"


class OverdeterminedScaleError(OrbitValidationError):
    message = "If both `a` and `P` are given, `rho_star` or `M_star` cannot be defined"


class StellarParameterCountError(OrbitValidationError):
    message = (
        "Must provide exactly two of: `rho_star`, `R_star`, or `M_star` "
        "if rho_star not implied"
    )


class ConflictingInclinationError(OrbitValidationError):
    message = "Only `incl`, `b`, or `duration` can be given"


class DurationMissingImpactParameterError(OrbitValidationError):
    message = "`b` must also be provided for a circular orbit if `duration` given"


class DurationMissingRadiusRatioError(OrbitValidationError):
    message = "`r` must also be provided if `duration` given"


class AmbiguousOmegaError(OrbitValidationError):
    message = "Only `ω`, or `cos_ω` and `sin_ω` can be provided"
