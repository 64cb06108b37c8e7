class DrawError(Exception):
    """Base error for winner selection; carries the HTTP status the API answers with."""
    status_code = 500
    default_message = "Winner selection failed"

    def __init__(self, message: str | None = None, *, giveaway_id: str | None = None):
        self.message = message or self.default_message
        self.giveaway_id = giveaway_id
        super().__init__(self.message)


class NotFound(DrawError):
    status_code = 404
    default_message = "Giveaway not found"


class NotEligible(DrawError):
    status_code = 400
    default_message = "Giveaway is not eligible for winner selection"


class NoParticipants(DrawError):
    status_code = 400
    default_message = "No participants found for this giveaway"


class OracleUnavailable(DrawError):
    status_code = 500
    default_message = "Randomness oracle is unavailable"


class OracleTimeout(DrawError):
    status_code = 500
    default_message = "Randomness oracle did not respond in time"


class AlreadyDrawn(DrawError):
    status_code = 409
    default_message = "Winners have already been drawn for this giveaway"


class StorageWriteFailed(DrawError):
    status_code = 500
    default_message = "Failed to save winner information"


RETRYABLE = (OracleUnavailable, OracleTimeout)
