class MeetingError(Exception):
    """Base class for failures reported back to the caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AlreadyExists(MeetingError):
    pass


class NotFound(MeetingError):
    pass


class Unauthenticated(MeetingError):
    def __init__(self, message: str = "not authenticated"):
        super().__init__(message)


class ValidationFailure(MeetingError):
    pass


class RoomClosed(ValidationFailure):
    """Join attempted on a room that is no longer active."""


class NotPermitted(MeetingError):
    pass
