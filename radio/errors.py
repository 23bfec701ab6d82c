"""
Client errors raised by the broadcast controller.

These are expected, user-facing conditions. The transport turns them into a
failed acknowledgement for the originating client; they are never process
failures and the controller raises them before touching any state.
"""


class ClientError(Exception):
    """Base class for errors reported back to the calling client"""
    message = "Client error"

    def __init__(self, message=None):
        super().__init__(message or self.message)


class InvalidName(ClientError):
    message = "The station name cannot be blank"


class NameTaken(ClientError):
    message = "Someone else is broadcasting to that channel"


class NotFound(ClientError):
    message = "Broadcast doesn't exist"


class OwnStation(ClientError):
    message = "You can't join your own station"


class NotStarted(ClientError):
    message = "Broadcast hasn't started yet"


class NotBroadcasting(ClientError):
    message = "No ongoing broadcast"


class InvalidPayload(ClientError):
    message = "Invalid payload"
