"""
Lifecycle Transition
Runs one named unit of work (reads, guards, writes) as a single database
transaction, so either every write in it commits or none do.

Conditional writes inside a unit raise WriteConflict when another writer
changed the row after it was read. The whole unit is then rolled back and
re-run from its first read, up to UNIVEND_TRANSITION_MAX_ATTEMPTS times.
Guard failures (MarketplaceError) are never re-run.
Between attempts the unit waits a jittered pause that doubles each time.
"""

import logging
import random
import time
from typing import Any, Callable, Dict, Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, OperationalError, transaction

from .errors import ErrorKind, MarketplaceError, WriteConflict
from .results import ServiceResult

logger = logging.getLogger(__name__)


def max_attempts() -> int:
    return max(1, int(getattr(settings, 'UNIVEND_TRANSITION_MAX_ATTEMPTS', 3)))


def backoff_delay(attempt: int) -> float:
    """Pause before attempt + 1: base * 2**(attempt - 1), scaled by 0.5-1.5"""
    base = float(getattr(settings, 'UNIVEND_TRANSITION_BACKOFF', 0.05))
    return base * (2 ** (attempt - 1)) * random.uniform(0.5, 1.5)


class LifecycleTransition:
    """
    Usage:
        def unit():
            order = ...  # read + guard + write
            return {'order': order}

        result = LifecycleTransition('order.accept', using='default').run(unit)
    """

    def __init__(self, name: str, using: str = 'default', attempts: Optional[int] = None):
        self.name = name
        self.using = using
        self.attempts = attempts or max_attempts()

    def run(self, unit: Callable[[], Optional[Dict[str, Any]]]) -> ServiceResult:
        last_error = None

        for attempt in range(1, self.attempts + 1):
            try:
                with transaction.atomic(using=self.using):
                    data = unit() or {}

            except MarketplaceError as e:
                logger.info(f'{self.name} refused: {e.kind.value} - {e.message}')
                return ServiceResult.from_error(e)

            except ValidationError as e:
                # Model-level invariants (Model.clean) rejected the write
                logger.warning(f'{self.name} invalid: {e.messages}')
                return ServiceResult.fail(ErrorKind.VALIDATION_ERROR, ' '.join(e.messages))

            except (WriteConflict, OperationalError) as e:
                # Lost a race (or the backend reported a lock/serialization
                # failure); start over from a fresh read
                last_error = e
                logger.warning(f'{self.name} conflict on attempt {attempt}/{self.attempts}: {e}')
                if attempt < self.attempts:
                    time.sleep(backoff_delay(attempt))
                continue

            except DatabaseError as e:
                logger.exception(f'{self.name} failed: {e}')
                return ServiceResult.fail(ErrorKind.TRANSITION_FAILED, cause=e)

            logger.info(f'{self.name} committed')
            return ServiceResult.ok(**data)

        logger.error(f'{self.name} gave up after {self.attempts} attempts: {last_error}')
        return ServiceResult.fail(
            ErrorKind.TRANSITION_FAILED,
            'This record is busy right now, please try again.',
            cause=last_error,
        )

