"""Error hierarchy surfaced at the HTTP boundary.

Every error carries the status code it maps to and a client-safe message.
Provider failures never appear here; verifiers absorb them into a reject.
"""


class PaywallError(Exception):
    """Base class for errors with a client-facing status code."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthError(PaywallError):
    """Invalid or absent identity token or session."""

    status_code = 401
    default_message = "Invalid session"


class ValidationError(PaywallError):
    """A required field is missing or malformed."""

    status_code = 400
    default_message = "Invalid request"


class NotFoundError(PaywallError):
    """Receipt missing or its payment id does not match."""

    status_code = 404
    default_message = "Receipt not found"


class PaymentRequiredError(PaywallError):
    """No approved payment, or confirmation was rejected."""

    status_code = 402
    default_message = "Payment required"


class ConflictError(PaywallError):
    """Confirmation attempted on a receipt that already reached a final state."""

    status_code = 409
    default_message = "Receipt already finalized"
