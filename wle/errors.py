class PipelineError(Exception):
    """Base class for fatal report errors."""


class LoadError(PipelineError):
    """Input table unreachable or malformed."""


class SchemaError(PipelineError):
    """Label column missing, no usable features, or missing feature values."""


class DimensionError(PipelineError):
    """Prediction-time table does not carry the trained feature columns."""
