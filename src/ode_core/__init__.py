"""ode_core state and option substrate for adaptive ODE integrators."""

from __future__ import annotations

from .errors import (
    ErrorCode,
    InvalidNormError,
    MissingOptionError,
    OdeCoreError,
    OptionConfigError,
    OptionKindMismatchError,
    OptionValueError,
    RetriesExhaustedError,
    StateIndexError,
    StateShapeError,
    StepSizeError,
    UnknownOptionError,
)
from .norms import (
    NormKind,
    aggregate_magnitudes,
    error_norm_for,
    pnorm,
    scaled_error_norm,
    step_accepted,
    sum_abs_powers,
)
from .option_sets import (
    AdaptiveOptions,
    FixedStepOptions,
    OptionSet,
    OptionSetBuilder,
    RetryBudget,
    check_step_bounds,
    clamp_step,
)
from .options import (
    OPTION_REGISTRY,
    Option,
    OptionMap,
    OptionName,
    OptionSpec,
    OutputPoints,
    default_for,
    format_comma_delimited,
    option_spec,
)
from .state import OdeState, RealLike, ScalarState, TupleState, VectorState, as_state

__all__ = [
    "OPTION_REGISTRY",
    "AdaptiveOptions",
    "ErrorCode",
    "FixedStepOptions",
    "InvalidNormError",
    "MissingOptionError",
    "NormKind",
    "OdeCoreError",
    "OdeState",
    "Option",
    "OptionConfigError",
    "OptionKindMismatchError",
    "OptionMap",
    "OptionName",
    "OptionSet",
    "OptionSetBuilder",
    "OptionSpec",
    "OptionValueError",
    "OutputPoints",
    "RealLike",
    "RetriesExhaustedError",
    "RetryBudget",
    "ScalarState",
    "StateIndexError",
    "StateShapeError",
    "StepSizeError",
    "TupleState",
    "UnknownOptionError",
    "VectorState",
    "aggregate_magnitudes",
    "as_state",
    "check_step_bounds",
    "clamp_step",
    "default_for",
    "error_norm_for",
    "format_comma_delimited",
    "option_spec",
    "pnorm",
    "scaled_error_norm",
    "step_accepted",
    "sum_abs_powers",
]

__version__ = "0.1.0"
