"""Error taxonomy shared by the store, the ingestion path and the HTTP layer.

Every error is rendered to clients as ``{"error": "<message>"}`` with the
status code carried by the exception class.
"""


class HubError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(HubError):
    """Missing, unknown or inactive station credential, or missing session."""
    status_code = 401


class NotFound(HubError):
    """Referenced station or reading does not exist."""
    status_code = 404


class ValidationError(HubError):
    """Input outside the accepted values (config ranges, required fields)."""
    status_code = 400


class StorageFailure(HubError):
    """The persistence layer failed; the message stays generic."""
    status_code = 500

    def __init__(self, message: str = "Storage failure"):
        super().__init__(message)
