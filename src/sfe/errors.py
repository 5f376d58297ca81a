"""Exceptions and warnings raised while building the state efficiency tables.

Errors stop the operation that raised them. Warnings are emitted with
`warnings.warn` for conditions that only exclude a state from the results.
"""


class SfeError(Exception):
    """Base class for errors raised by the sfe pipeline."""


class ParseError(SfeError, ValueError):
    """An input file or row could not be parsed into plant records."""


class InsufficientDataError(SfeError, ValueError):
    """Too few observations to compute a statistic."""


class SfeWarning(UserWarning):
    """Base class for warnings emitted by the sfe pipeline."""


class MissingStateError(SfeWarning):
    """A state is present in one reporting year but not the other."""


class UndefinedMetricError(SfeWarning):
    """A state has zero net generation so its efficiency ratio is undefined."""
