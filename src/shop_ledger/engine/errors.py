"""Error taxonomy for the order and inventory engine.

Engine and repository code raise these; ``OrderService`` turns them into
``{"success": False, ...}`` result dicts at the public boundary.
"""


class EngineError(ValueError):
    """Base class for expected, user-facing engine failures."""

    code = "ENGINE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_result(self) -> dict:
        return {"success": False, "error": self.message, "code": self.code}


class NotFound(EngineError):
    code = "NOT_FOUND"


class LockedOrder(EngineError):
    code = "LOCKED_ORDER"


class InvalidInput(EngineError):
    code = "INVALID_INPUT"


class CoreAlreadyProcessed(EngineError):
    code = "CORE_ALREADY_PROCESSED"


class ValidationBlocked(EngineError):
    code = "VALIDATION_BLOCKED"
