"""
Product Availability Gate
Single source of truth for whether a product can still be bought.
"""

import logging
import uuid
from typing import Iterable, List

from django.core.exceptions import ValidationError
from django.utils import timezone

from ..models import Product
from .errors import ProductNoLongerAvailableError
from .results import ServiceResult
from .transitions import LifecycleTransition

logger = logging.getLogger(__name__)


class ProductAvailabilityGate:

    def __init__(self, using: str = 'default'):
        self.using = using

    def _products(self):
        return Product.objects.using(self.using)

    def is_available(self, product_id) -> bool:
        """Unknown products are reported as unavailable"""
        try:
            return self._products().filter(pk=product_id, status=Product.AVAILABLE).exists()
        except (ValueError, ValidationError):
            return False

    def assert_available(self, product_ids: Iterable) -> None:
        """
        Raise ProductNoLongerAvailableError unless every product exists
        and is still available. Call inside the unit that captures funds.
        """
        ids = _distinct(product_ids)
        available = set(
            self._products()
            .select_for_update()
            .filter(pk__in=ids, status=Product.AVAILABLE)
            .values_list('pk', flat=True)
        )
        missing = [pid for pid in ids if pid not in available]
        if missing:
            raise ProductNoLongerAvailableError(product_ids=[str(pid) for pid in missing])

    def apply_mark_sold(self, product_ids: Iterable) -> int:
        """
        Flip available → sold for every product, all or nothing.
        The update only matches rows that are still available, so a product
        sold by a concurrent order makes the count come up short.
        """
        ids = _distinct(product_ids)
        updated = self._products().filter(pk__in=ids, status=Product.AVAILABLE).update(
            status=Product.SOLD,
            sold_at=timezone.now(),
            updated_at=timezone.now(),
        )
        if updated != len(ids):
            raise ProductNoLongerAvailableError(product_ids=[str(pid) for pid in ids])

        logger.info(f'Marked {updated} product(s) sold')
        return updated

    def mark_sold(self, product_ids: Iterable) -> ServiceResult:
        """Standalone form of apply_mark_sold; acceptance uses the raising form"""
        ids = list(product_ids)

        def unit():
            return {'sold': self.apply_mark_sold(ids)}

        return LifecycleTransition('product.mark_sold', using=self.using).run(unit)


def _distinct(product_ids: Iterable) -> List:
    seen = []
    for raw in product_ids:
        try:
            pid = raw if isinstance(raw, uuid.UUID) else uuid.UUID(str(raw))
        except ValueError:
            raise ProductNoLongerAvailableError(product_ids=[str(raw)])
        if pid not in seen:
            seen.append(pid)
    return seen


# Singleton instance
availability_gate = ProductAvailabilityGate()
