# Typed errors raised by the ride generation and route planning code.
#
# Callers decide whether to log, retry or surface them; nothing here logs.

class ServiceError(Exception):
    """Base class for every error this service raises on purpose"""

class InvalidState(ServiceError):
    """Operation not allowed in the subscription's (or route's) current status"""

class InvalidInput(ServiceError):
    """Malformed input rejected before any generation logic runs"""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or []

class ConditionalUpdateConflict(ServiceError):
    """The checkpoint moved under us; the whole generation call is safe to retry"""

    def __init__(self, subscription_id, expected, attempted):
        super().__init__(
            f"Checkpoint for subscription {subscription_id} is no longer {expected}; "
            f"could not advance it to {attempted}"
        )
        self.subscription_id = subscription_id
        self.expected = expected
        self.attempted = attempted

class NotFound(ServiceError):
    """A referenced record does not exist"""

class Unauthorized(ServiceError):
    """The acting user may not touch this record"""
