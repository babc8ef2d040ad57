"""
Product reviews. The review row and the product's rating aggregates are
written in one transaction so the average never drifts from the rows.
"""

import logging

from django.core.exceptions import ValidationError

from ..models import Product, Review
from .errors import ErrorKind, NotFoundError
from .results import ServiceResult
from .transitions import LifecycleTransition
from .types import Identity

logger = logging.getLogger(__name__)

MIN_COMMENT_LENGTH = 10
MAX_COMMENT_LENGTH = 1000


class ReviewService:

    def __init__(self, using: str = 'default'):
        self.using = using

    def submit_review(self, product_id, reviewer: Identity, rating, comment: str) -> ServiceResult:
        comment = (comment or '').strip()

        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            return ServiceResult.fail(ErrorKind.VALIDATION_ERROR, 'Rating must be between 1 and 5.')

        if not MIN_COMMENT_LENGTH <= len(comment) <= MAX_COMMENT_LENGTH:
            return ServiceResult.fail(
                ErrorKind.VALIDATION_ERROR,
                f'Comment must be {MIN_COMMENT_LENGTH}-{MAX_COMMENT_LENGTH} characters.'
            )

        def unit():
            try:
                product = Product.objects.using(self.using).select_for_update().get(pk=product_id)
            except (Product.DoesNotExist, ValueError, ValidationError):
                raise NotFoundError('Product not found.')

            review = Review(
                product=product,
                user_id=reviewer.user_id,
                user_name=reviewer.display_name or 'Anonymous',
                rating=rating,
                comment=comment,
            )
            review.full_clean()
            review.save(using=self.using)

            count = product.review_count + 1
            average = ((product.average_rating * product.review_count) + rating) / count
            Product.objects.using(self.using).filter(pk=product.pk).update(
                review_count=count,
                average_rating=average,
            )
            product.review_count = count
            product.average_rating = average

            logger.info(f'Review added to product {product.pk}: {rating}/5, now {average:.2f} over {count}')

            return {'review': review, 'product': product}

        return LifecycleTransition('product.review', using=self.using).run(unit)


# Singleton instance
review_service = ReviewService()
