class JourneyBoardError(Exception):
    """Base exception for the pipeline service."""

    pass


class ValidationError(JourneyBoardError):
    """Raised when a required field is empty or malformed, before any remote call."""

    pass


class NotFoundError(JourneyBoardError):
    """Raised when a journey, stage or person is not part of the organization or board."""

    pass


class RemoteError(JourneyBoardError):
    """Raised when the persistence collaborator fails (transport, constraint, timeout)."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Remote call '{operation}' failed: {reason}")


class MissingOrganizationError(JourneyBoardError):
    """Raised when the caller's identity carries no organization."""

    pass
