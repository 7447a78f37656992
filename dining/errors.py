"""
Error taxonomy for the recommendation and choice engine.

Every failure carries a `kind` so callers (and the JSON API) can tell
them apart. None of these are retried internally.
"""


class DiningError(Exception):
    """Base class for all engine errors."""
    kind = 'error'
    status_code = 500

    def __init__(self, message: str = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'message': self.message}


class NotFoundError(DiningError):
    """Event, group, member or restaurant does not exist."""
    kind = 'not_found'
    status_code = 404


class InvalidInputError(DiningError):
    """Value outside its closed domain, or an empty participant set."""
    kind = 'invalid_input'
    status_code = 400


class UnauthorizedError(DiningError):
    """Actor is not allowed to perform the operation."""
    kind = 'unauthorized'
    status_code = 403


class ConflictError(DiningError):
    """Event already decided for a different restaurant."""
    kind = 'conflict'
    status_code = 409

    def __init__(self, message: str = None, chosen_restaurant_id: str = None):
        super().__init__(message)
        self.chosen_restaurant_id = chosen_restaurant_id

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['chosen_restaurant_id'] = self.chosen_restaurant_id
        return data


class CommitTimeoutError(DiningError):
    """Commit could not acquire its exclusive scope in time."""
    kind = 'timeout'
    status_code = 503


class UpstreamError(DiningError):
    """A collaborator store failed."""
    kind = 'upstream'
    status_code = 502
