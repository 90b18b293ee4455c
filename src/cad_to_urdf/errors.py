"""Exception taxonomy for a conversion run.

Every error that aborts a run derives from ``ConversionError``; the driver
in ``cad_to_urdf.converter`` is the single place that catches it and reports
the failure through the log.
"""


class ConversionError(Exception):
    """Base class for failures that abort the current conversion run."""


class ConfigurationError(ConversionError):
    """The configuration document is missing, malformed or lacks a required key."""


class ResolutionError(ConversionError):
    """A component, reference frame or axis could not be located in the CAD host."""


class JointLimitsError(ConversionError):
    """The joint-limits table is unreadable or has no row for a joint."""


class ModelError(ConversionError):
    """An element could not be inserted into the robot model."""


class ExportError(ConversionError):
    """The model failed validation or could not be written."""
