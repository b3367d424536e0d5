# users/emails.py
"""
Participant notifications.

Plain-text mails sent through Django's mail backend (console in dev).
Callers send these after a successful state change and never let a
failure here undo that change: see users.services.notify.
"""
from django.core.mail import send_mail, send_mass_mail
from django.conf import settings


def build_frontend_url(path: str) -> str:
    base = getattr(settings, "FRONTEND_URL", "").rstrip("/")
    return f"{base}/{path.lstrip('/')}"


def _greeting(user):
    return user.nickname or user.name or user.email


def _send(user, subject, message):
    if not getattr(user, "email", None):
        # No email set, nothing to send
        return

    send_mail(
        subject=subject,
        message=message,
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
        recipient_list=[user.email],
        fail_silently=False,
    )


def send_verification_email(user, token):
    verify_url = build_frontend_url(f"verify/{token}")
    _send(
        user,
        "Verify your email",
        f"Hi {_greeting(user)},\n\n"
        f"Please confirm your email address to continue your application:\n"
        f"{verify_url}\n\n"
        f"If this wasn't you, you can ignore this email.",
    )


def send_application_email(user):
    _send(
        user,
        "We received your application",
        f"Hi {_greeting(user)},\n\n"
        f"Thanks for applying! Your application has been submitted.\n"
        f"You can still edit it until registration closes:\n"
        f"{build_frontend_url('application')}\n",
    )


def send_admittance_email(user):
    _send(
        user,
        "You're in!",
        f"Hi {_greeting(user)},\n\n"
        f"Congratulations, you have been admitted to the hackathon.\n"
        f"Please confirm your spot before the deadline:\n"
        f"{build_frontend_url('confirmation')}\n",
    )


def send_admittance_terminal_email(user):
    _send(
        user,
        "You're in, terminal track included!",
        f"Hi {_greeting(user)},\n\n"
        f"Congratulations, you have been admitted to the hackathon and to the terminal track.\n"
        f"Please confirm your spot before the deadline:\n"
        f"{build_frontend_url('confirmation')}\n",
    )


def send_confirmation_email(user):
    _send(
        user,
        "Your spot is confirmed",
        f"Hi {_greeting(user)},\n\n"
        f"Thanks for confirming your attendance, see you at the event!\n"
        f"Your participant id is {user.participant_id}.\n",
    )


def send_declined_email(user):
    _send(
        user,
        "You have declined your spot",
        f"Hi {_greeting(user)},\n\n"
        f"We're sorry to hear you can't make it. Your spot has been released.\n",
    )


def send_reject_emails(users):
    """
    One mail per rejected applicant, sent over a single connection.
    """
    subject = "About your application"
    from_email = getattr(settings, "DEFAULT_FROM_EMAIL", None)
    messages = [
        (
            subject,
            f"Hi {_greeting(user)},\n\n"
            f"Thank you for applying. Unfortunately we could not offer you a spot this time.\n",
            from_email,
            [user.email],
        )
        for user in users
        if getattr(user, "email", None)
    ]
    if not messages:
        return 0
    return send_mass_mail(messages, fail_silently=False)


def send_password_reset_email(user, token):
    reset_url = build_frontend_url(f"reset/{user.pk}/{token}")
    _send(
        user,
        "Password reset requested",
        f"Hi {_greeting(user)},\n\n"
        f"Someone requested a password reset for your account. Reset it here:\n"
        f"{reset_url}\n\n"
        f"If this wasn't you, you can ignore this email.",
    )


def send_password_changed_email(user):
    _send(
        user,
        "Your password was changed",
        f"Hi {_greeting(user)},\n\n"
        f"Your password has just been changed. If this wasn't you, contact the organizers right away.\n",
    )
