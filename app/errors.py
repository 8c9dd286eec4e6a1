"""Error taxonomy shared by the slot store and the swap engine.

Services raise these; the HTTP layer maps ``status_code`` onto the response.
"""


class SlotSwapError(Exception):
    """Base class for every domain failure. ``detail`` is shown to the user."""

    status_code = 500
    kind = "error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(SlotSwapError):
    status_code = 400
    kind = "validation_error"


class NotFound(SlotSwapError):
    status_code = 404
    kind = "not_found"


class Forbidden(SlotSwapError):
    status_code = 403
    kind = "forbidden"


class InvalidTransition(SlotSwapError):
    status_code = 400
    kind = "invalid_transition"


class AlreadyProcessed(SlotSwapError):
    status_code = 400
    kind = "already_processed"


class Conflict(SlotSwapError):
    status_code = 409
    kind = "conflict"


class InconsistentState(SlotSwapError):
    """An invariant was found violated. Indicates a bug, never user error."""

    status_code = 500
    kind = "inconsistent_state"
