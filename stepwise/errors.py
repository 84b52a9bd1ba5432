#!/usr/bin/env python3
"""
Exception types shared across Stepwise components.

Only CatalogError is fatal, and only at startup. Inside a running session each
component converts its own failures into a value the controller can render.
"""


class StepwiseError(Exception):
    """Base class for Stepwise errors"""


class CatalogError(StepwiseError):
    """The exercise catalog is missing or malformed"""


class PersistenceError(StepwiseError):
    """The progress record could not be read or written"""
