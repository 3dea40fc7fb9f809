from __future__ import annotations

ARC_NOT_FOUND = "ARC_NOT_FOUND"
ARC_GENERATION_FAILED = "ARC_GENERATION_FAILED"
ARC_INPUT_INVALID = "ARC_INPUT_INVALID"
ARC_INTEGRATION_UNSUPPORTED = "ARC_INTEGRATION_UNSUPPORTED"
ARC_INTERNAL_ERROR = "ARC_INTERNAL_ERROR"


class ArcEngineError(RuntimeError):
    def __init__(
        self,
        *,
        code: str,
        message: str,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = str(code)
        self.message = str(message)
        self.retryable = bool(retryable)


class NotFoundError(ArcEngineError):
    """Raised when an arc id is absent from the store."""

    def __init__(self, arc_id: str) -> None:
        super().__init__(code=ARC_NOT_FOUND, message=f"Arc not found: {arc_id}")
        self.arc_id = str(arc_id)


class GenerationError(ArcEngineError):
    """Raised when archetype selection or template instantiation fails."""

    def __init__(self, *, detail: str | None = None) -> None:
        message = "Arc generation failed."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(code=ARC_GENERATION_FAILED, message=message, retryable=True)


class ValidationError(ArcEngineError):
    """Raised when generation input or an update event is malformed."""

    def __init__(self, *, detail: str | None = None) -> None:
        message = "Arc input was invalid."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(code=ARC_INPUT_INVALID, message=message)


class IntegrationError(ArcEngineError):
    """Raised when an adapter receives an event type it does not handle."""

    def __init__(self, *, adapter: str, event_kind: str) -> None:
        super().__init__(
            code=ARC_INTEGRATION_UNSUPPORTED,
            message=f"{adapter} adapter does not handle event kind '{event_kind}'",
        )
        self.adapter = str(adapter)
        self.event_kind = str(event_kind)
