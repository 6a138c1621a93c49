"""
Error taxonomy for the simulation engine. None of these are fatal: the tick
loop logs them and carries on with the remaining buses and subscribers.
"""


class TrackingError(Exception):
    pass


class RouteUnresolved(TrackingError):
    """Route geometry is missing for a direction (unknown key or not fetched yet)."""


class RouteFetchFailed(TrackingError):
    """The geometry provider errored, timed out or returned no usable path."""


class PersistenceWriteFailed(TrackingError):
    pass


class SubscriberDeliveryFailed(TrackingError):
    pass
