# fieldwork_errors.py
"""Error kinds surfaced by the threshold and ARU location pipelines.

Every pipeline aborts on the first one of these; none are retried.
"""


class FieldworkError(Exception):
    """Base class for all pipeline errors."""


class ValidationFileNotFoundError(FieldworkError, FileNotFoundError):
    pass


class GeometryFileNotFoundError(FieldworkError, FileNotFoundError):
    pass


class MalformedRecordError(FieldworkError, ValueError):
    pass


class CRSMismatchError(FieldworkError):
    pass


class DuplicateNameError(FieldworkError):
    pass


class OrphanBlockError(FieldworkError):
    pass


class ConstraintUnsatisfiableError(FieldworkError):
    """The sampler could not place a point within its retry budget."""


class InsufficientValidationsError(FieldworkError):
    """A species has only valid or only invalid labels, so no curve can be fitted."""
