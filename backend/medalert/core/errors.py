"""Module: errors."""


# Base class for failures that map onto a specific, user-visible reason.
class MedAlertError(Exception):
    status_code = 400
    code = "medalert_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class UnknownFrequency(MedAlertError):
    status_code = 422
    code = "unknown_frequency"


class InvalidInterval(MedAlertError):
    status_code = 422
    code = "invalid_interval"


class InvalidDelay(MedAlertError):
    status_code = 422
    code = "invalid_delay"


class InvalidQuantity(MedAlertError):
    status_code = 422
    code = "invalid_quantity"


# The slot already left upcoming; it reopens on the next cycle.
class InvalidTransition(MedAlertError):
    status_code = 409
    code = "invalid_transition"


class SlotNotFound(MedAlertError):
    status_code = 404
    code = "slot_not_found"


class MedicationNotFound(MedAlertError):
    status_code = 404
    code = "medication_not_found"


class UserNotFound(MedAlertError):
    status_code = 404
    code = "user_not_found"


class ConcurrentModification(MedAlertError):
    status_code = 409
    code = "concurrent_modification"


# Raised by channel senders; the dispatcher records it and never re-raises.
class DispatchFailure(MedAlertError):
    status_code = 502
    code = "dispatch_failure"

    def __init__(self, channel: str, detail: str):
        super().__init__(f"{channel}: {detail}")
        self.channel = channel
