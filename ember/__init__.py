"""Ember: an embeddable expression engine and its command-line host driver."""

__version__ = "0.1.0"

from ember.ember_datatypes import (
    CallFrame, EvalError, EvaluationOutcome, GenericFailure, HasValue,
    NO_VALUE, NoValue, StructuredError,
)
from ember.ember_runtime import Engine

__all__ = [
    "__version__",
    "CallFrame",
    "Engine",
    "EvalError",
    "EvaluationOutcome",
    "GenericFailure",
    "HasValue",
    "NO_VALUE",
    "NoValue",
    "StructuredError",
]
