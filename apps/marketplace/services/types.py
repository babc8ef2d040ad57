"""
Plain value types passed into the services by the surrounding app.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Identity:
    """Resolved caller identity. The services trust it and never authenticate."""
    user_id: int
    display_name: str = ''
    role: str = 'buyer'
    university: str = ''
    address: str = ''

    @classmethod
    def from_user(cls, user) -> 'Identity':
        return cls(
            user_id=user.pk,
            display_name=user.get_full_name(),
            role=user.role,
            university=user.university,
            address=user.address,
        )


@dataclass(frozen=True)
class CartLine:
    """One line of a buyer's cart at checkout time"""
    product: 'Product'  # noqa: F821
    quantity: int = 1


@dataclass(frozen=True)
class RelatedEntity:
    """What a ledger entry documents, e.g. ('order', <order id>)"""
    entity_type: str
    entity_id: str

    @classmethod
    def order(cls, order_id) -> 'RelatedEntity':
        return cls('order', str(order_id))

    @classmethod
    def funding(cls, reference: Optional[str] = None) -> 'RelatedEntity':
        return cls('funding', reference or '')
