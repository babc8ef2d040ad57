"""
Outgoing mail for Univend.

Every message gets the Univend subject prefix and sign-off, reaches each
address once, and is sent from DEFAULT_FROM_EMAIL unless the caller names
another sender.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)

SIGN_OFF = "\n\n--\nUnivend, your campus marketplace\n{site_url}"


def normalize_recipients(recipient_list: Iterable[str]) -> List[str]:
    """Trimmed addresses, first spelling kept, duplicates dropped case-insensitively."""
    seen = set()
    recipients = []
    for raw in recipient_list:
        address = str(raw).strip()
        if address and address.lower() not in seen:
            seen.add(address.lower())
            recipients.append(address)
    return recipients


def univend_subject(subject: str) -> str:
    """Single-line subject carrying the Univend prefix exactly once."""
    prefix = getattr(settings, "UNIVEND_EMAIL_SUBJECT_PREFIX", "[Univend] ")
    subject = " ".join(subject.split())
    if subject.startswith(prefix.strip()):
        return subject
    return f"{prefix}{subject}"


def send_univend_email(
    subject: str,
    message: str,
    recipient_list: Iterable[str],
    from_email: Optional[str] = None,
) -> int:
    """
    Send a plain-text Univend email using Django's configured email backend.

    - Prefixes the subject and appends the sign-off with `settings.SITE_URL`
    - Uses `settings.DEFAULT_FROM_EMAIL` as the sender unless `from_email` is given
    - Raises exceptions if sending fails (`fail_silently=False`)
    - Returns the number of messages sent (per Django's `send_mail`)
    """
    if not subject or not isinstance(subject, str):
        raise ValueError("subject must be a non-empty string")

    if message is None or not isinstance(message, str):
        raise ValueError("message must be a string")

    if recipient_list is None:
        raise ValueError("recipient_list must be provided")

    recipients = normalize_recipients(recipient_list)
    if not recipients:
        raise ValueError("recipient_list must contain at least one email address")

    body = message.strip() + SIGN_OFF.format(site_url=settings.SITE_URL)

    sent_count = send_mail(
        subject=univend_subject(subject),
        message=body,
        from_email=from_email or settings.DEFAULT_FROM_EMAIL,
        recipient_list=recipients,
        fail_silently=False,
    )

    if sent_count < 1:
        raise RuntimeError("Email was not sent (send_mail returned 0).")

    logger.info(f"📧 '{subject}' sent to {len(recipients)} recipient(s)")
    return sent_count
