import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils.html import strip_tags

logger = logging.getLogger(__name__)


def send_templated_mail(to, subject, context):
    """
    Render the shared mail template and send it.
    Delivery is best-effort: failures are logged and reported as False.
    """
    html_body = render_to_string('api/email/message.html', context)
    message = EmailMultiAlternatives(
        subject=subject,
        body=strip_tags(html_body),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to],
    )
    message.attach_alternative(html_body, 'text/html')
    try:
        message.send()
    except Exception:
        logger.exception("Sending '%s' mail to %s failed", subject, to)
        return False
    logger.info("Sent '%s' mail to %s", subject, to)
    return True


def send_verification_mail(token, user):
    welcome = (
        f"Hi {user.name}, welcome to Musify! There is so much we do for verified users. "
        f"Use the given OTP to verify your email."
    )
    return send_templated_mail(user.email, 'Welcome Message', {
        'title': 'Welcome to Musify',
        'message': welcome,
        'link': '#',
        'button_title': token,
    })


def send_forgot_password_link(email, link):
    return send_templated_mail(email, 'Reset Password Link', {
        'title': 'Forgot Password',
        'message': "We just received a request that you forgot your password. "
                   "No problem, you can use the link below to create a brand new password.",
        'link': link,
        'button_title': 'Reset Password',
    })


def send_password_reset_success_email(user):
    return send_templated_mail(user.email, 'Password Reset Successfully', {
        'title': 'Password Reset Successfully',
        'message': f"Dear {user.name}, we just updated your new password. You can now sign in with it.",
        'link': settings.SIGN_IN_URL,
        'button_title': 'Log in',
    })
