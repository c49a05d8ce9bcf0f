"""Error hierarchy for the bell timetable.

Expected resolution outcomes (no schedule configured, non-working holiday)
are return values, not exceptions. Only genuine faults live here.
"""


class BellScheduleError(Exception):
    """Base exception for all bell timetable errors."""

    pass


class CallReferenceError(BellScheduleError, ValueError):
    """A call must reference exactly one of a lesson or a break.

    Raised when a call is built with both references, or with neither.
    """

    pass


class ScheduleConfigurationError(BellScheduleError, ValueError):
    """A schedule violates its configured bounds.

    Examples: lesson duration outside 15-90 minutes, missing first lesson start.
    """

    pass


class CatalogUnavailableError(BellScheduleError):
    """The schedule catalog could not be read.

    Wraps storage errors so callers do not depend on the storage library.
    """

    pass


class CallDeliveryError(BellScheduleError):
    """No bell sink accepted a fired call."""

    pass
