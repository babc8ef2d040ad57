"""
Marketplace App Forms
Validation for the request bodies the JSON views accept.
"""

import uuid

from django import forms
from django.core.exceptions import ValidationError

from .models import DELIVERY_METHOD_CHOICES, Product


# ==========================================
# PRODUCT FORMS
# ==========================================

class ProductForm(forms.ModelForm):
    """
    Vendor lists a new product. The vendor and university come from the
    vendor's account, not from the request.
    """

    delivery_methods = forms.MultipleChoiceField(
        choices=DELIVERY_METHOD_CHOICES,
        help_text='How buyers can receive this product'
    )

    class Meta:
        model = Product
        fields = [
            'title', 'category', 'description',
            'price', 'image_url', 'delivery_methods'
        ]

    def __init__(self, *args, **kwargs):
        self.vendor = kwargs.pop('vendor', None)
        super().__init__(*args, **kwargs)

    def clean_title(self):
        title = self.cleaned_data.get('title', '').strip()
        if len(title) < 3:
            raise ValidationError('Title must be at least 3 characters.')
        return title

    def save(self, commit=True):
        product = super().save(commit=False)

        if self.vendor is not None:
            product.vendor = self.vendor
            product.university = self.vendor.university

        if commit:
            product.save()

        return product


# ==========================================
# CHECKOUT FORMS
# ==========================================

class CheckoutForm(forms.Form):
    """
    Checkout body: the cart lines plus the chosen delivery method.
    Lines look like {"product_id": "<uuid>", "quantity": 1}.
    """

    delivery_method = forms.ChoiceField(choices=DELIVERY_METHOD_CHOICES)
    items = forms.JSONField()

    def clean_items(self):
        items = self.cleaned_data.get('items')

        if not isinstance(items, list) or not items:
            raise ValidationError('Your cart is empty.')

        lines = []
        for item in items:
            if not isinstance(item, dict) or not item.get('product_id'):
                raise ValidationError('Each item needs a product_id.')

            quantity = item.get('quantity', 1)
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise ValidationError('Quantity must be a positive whole number.')

            try:
                product_id = str(uuid.UUID(str(item['product_id'])))
            except ValueError:
                raise ValidationError('Product not found.')

            lines.append((product_id, quantity))

        return lines


# ==========================================
# WALLET FORMS
# ==========================================

class FundWalletForm(forms.Form):
    """
    Internal top-up. Amounts are whole naira.
    """

    amount = forms.IntegerField(
        min_value=1,
        max_value=10_000_000,
        label='Amount (₦)'
    )


# ==========================================
# REVIEW FORMS
# ==========================================

class ReviewForm(forms.Form):
    rating = forms.IntegerField(min_value=1, max_value=5)
    comment = forms.CharField(min_length=10, max_length=1000, strip=True)


class CancelOrderForm(forms.Form):
    reason = forms.CharField(max_length=500, required=False, strip=True)


# ==========================================
# CHAT FORMS
# ==========================================

class MessageForm(forms.Form):
    text = forms.CharField(min_length=1, max_length=1000, strip=True)
