"""
Forms for Univend account profiles.
Location: apps/users/forms.py
"""

from django import forms
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from .models import CustomUser


def _sentence_case(value):
    return value[:1].upper() + value[1:].lower() if value else ''


class ProfileForm(forms.ModelForm):
    """
    Name, delivery address and phone. The display name is rebuilt from the
    first and last names, e.g. 'ADA' + 'obi' -> 'Ada Obi'.
    """

    first_name = forms.CharField(
        label=_('First Name'),
        min_length=2,
        max_length=70,
        strip=True,
        error_messages={
            'required': _('First name is required.'),
            'min_length': _('First name must be at least 2 characters.'),
        }
    )
    last_name = forms.CharField(
        label=_('Last Name'),
        min_length=2,
        max_length=70,
        strip=True,
        error_messages={
            'required': _('Last name is required.'),
            'min_length': _('Last name must be at least 2 characters.'),
        }
    )

    class Meta:
        model = CustomUser
        fields = ['address', 'phone']

    def clean_phone(self):
        phone = self.cleaned_data.get('phone', '').replace(' ', '')

        if phone and not phone.lstrip('+').isdigit():
            raise ValidationError(_('Phone number can only contain digits.'))

        return phone

    def save(self, commit=True):
        user = super().save(commit=False)
        user.username = (
            f"{_sentence_case(self.cleaned_data['first_name'])} "
            f"{_sentence_case(self.cleaned_data['last_name'])}"
        )

        if commit:
            user.save(update_fields=['username', 'address', 'phone'])

        return user


class FcmTokenForm(forms.Form):
    token = forms.CharField(max_length=255, strip=True)
