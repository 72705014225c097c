import logging
import secrets

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


def make_onboarding_code() -> str:
    """Eight hex characters, used as the initial password."""
    return secrets.token_hex(4).upper()


def send_onboarding_email(*, email: str, full_name: str, role: str, code: str) -> bool:
    subject = 'Your PG Residency Tracker account'
    body = (
        f"Hello {full_name},\n\n"
        f"An account with the role {role} has been created for you.\n"
        f"Sign in at {settings.FRONTEND_URL} with this email address and the code below "
        f"as your password:\n\n    {code}\n\n"
        "Please change it after your first login.\n"
    )
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [email], fail_silently=False)
    except Exception:
        logger.exception('Failed to send onboarding email to %s', email)
        return False
    logger.info('Onboarding email sent to %s', email)
    return True
