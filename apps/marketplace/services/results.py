from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors import ErrorKind, DEFAULT_MESSAGES, MarketplaceError


@dataclass
class ServiceResult:
    """
    Outcome of a public service operation: {success, error?, data?}.

    Failures carry the ErrorKind so callers can render a precise message.
    retryable is only set for TransitionFailed, where resubmitting is safe.
    """
    success: bool
    error: Optional[ErrorKind] = None
    message: str = ''
    data: Dict[str, Any] = field(default_factory=dict)
    retryable: bool = False
    cause: Optional[BaseException] = field(default=None, repr=False)

    @classmethod
    def ok(cls, **data) -> 'ServiceResult':
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str = '', cause: Optional[BaseException] = None) -> 'ServiceResult':
        return cls(
            success=False,
            error=kind,
            message=message or DEFAULT_MESSAGES[kind],
            retryable=kind == ErrorKind.TRANSITION_FAILED,
            cause=cause,
        )

    @classmethod
    def from_error(cls, exc: MarketplaceError) -> 'ServiceResult':
        return cls.fail(exc.kind, exc.message)

    def __bool__(self):
        return self.success

    def to_dict(self) -> Dict[str, Any]:
        payload = {'success': self.success}
        if self.error is not None:
            payload['error'] = self.error.value
            payload['message'] = self.message
            if self.retryable:
                payload['retryable'] = True
        return payload
