import traceback
from typing import Optional


class WebhookError(Exception):
    def __init__(self, message: str, status_code: int = 400, details: Optional[str] = None, stack_trace: bool = False):
        self.message = message
        self.status_code = status_code
        self.details = details
        self.stack_trace = traceback.format_exc() if stack_trace else None
        super().__init__(self.message)


class AuthError(WebhookError):
    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message, status_code=401)


class MalformedPayloadError(WebhookError):
    def __init__(self, details: Optional[str] = None):
        super().__init__("Malformed payload", status_code=400, details=details)


class RecordSkippedError(WebhookError):
    """
    A single ticket could not be turned into a record.
    Raised and caught inside the normalizer; the rest of the batch continues.
    """

    def __init__(self, ticket_id: str, stage: str, reason: str):
        self.ticket_id = ticket_id
        self.stage = stage
        self.reason = reason
        super().__init__(f"Ticket {ticket_id} skipped at {stage}: {reason}", status_code=422)


class StoreError(WebhookError):
    def __init__(self, details: str, stage: Optional[str] = None, ticket_id: Optional[str] = None):
        self.stage = stage
        self.ticket_id = ticket_id
        context = ", ".join(
            part for part in (
                f"stage={stage}" if stage else None,
                f"ticket_id={ticket_id}" if ticket_id else None,
            ) if part
        )
        super().__init__(
            "Internal server error",
            status_code=500,
            details=f"{details} ({context})" if context else details,
            stack_trace=True,
        )


class TicketLockTimeoutError(WebhookError):
    def __init__(self, ticket_id: str):
        self.ticket_id = ticket_id
        super().__init__(
            f"Ticket {ticket_id} is being updated by another request", status_code=409)


class TicketLockUnavailableError(WebhookError):
    """Redis could not be reached while taking a ticket lock."""

    def __init__(self, details: str, ticket_id: Optional[str] = None):
        self.stage = "ticket_lock"
        self.ticket_id = ticket_id
        context = f"stage={self.stage}" + (f", ticket_id={ticket_id}" if ticket_id else "")
        super().__init__(
            "Ticket lock unavailable",
            status_code=503,
            details=f"{details} ({context})",
            stack_trace=True,
        )
