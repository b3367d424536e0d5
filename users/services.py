# users/services.py
"""
Admission engine.

Each operation re-reads the settings, runs its time guard (if any), and then
issues one conditional UPDATE whose filter is the transition's predicate
from users.state_machine. Zero updated rows means the record does not exist
(NotFound) or its state no longer allows the transition (PreconditionFailed);
in both cases nothing was written.

Notifications go out after the write succeeded and never undo it.
"""
import logging
import math

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core import signing
from django.db import IntegrityError, transaction
from django.db.models import Q

from core.datetime_utils import now, now_ms
from core.exceptions import InvalidInput, NotFound, PreconditionFailed
from core.models import RegistrationSettings
from teams.models import Team
from teams.services import TeamService

from . import emails
from .filters import UserQuery
from .state_machine import (
    ACCEPT_TERMINAL,
    ACCEPT_TRAVEL_CLASS,
    ADMIN_UPDATE_PROFILE,
    ADMIT,
    CHECK_IN,
    CHECK_OUT,
    CONFIRM,
    DECLINE,
    RATE,
    REJECT,
    SOFT_ADMIT,
    SUBMIT_PROFILE,
    SUBMIT_REIMBURSEMENT,
    UN_SOFT_ADMIT,
    UNREJECT,
    can_transition,
    check_application_window,
    check_confirmation_deadline,
    check_registration_window,
    check_reimbursement_deadline,
    confirm_by_for,
    get_transition,
)

logger = logging.getLogger("hackreg.users")

User = get_user_model()

VERIFY_SALT = "hackreg.verify-email"
REGISTER_ATTEMPTS = 3

REIMBURSEMENT_CLASSES = {value for value, _ in User.REIMBURSEMENT_CHOICES}
GENDERS = {value for value, _ in User.GENDER_CHOICES}
TEAM_SELECTIONS = {value for value, _ in User.TEAM_SELECTION_CHOICES}


def notify(send, *args):
    """Run a notification, logging (never raising) on failure."""
    try:
        send(*args)
    except Exception as e:
        logger.warning("Notification %s failed: %s", getattr(send, "__name__", send), e)


def min_password_length():
    return getattr(settings, "MIN_PASSWORD_LENGTH", 6)


def check_password(password):
    if not password or len(password) < min_password_length():
        raise InvalidInput(f"Password must be {min_password_length()} or more characters.")


def normalize_email(email):
    if not isinstance(email, str) or "@" not in email:
        raise InvalidInput("Please enter a valid email address.")
    return email.strip().lower()


def verification_token(user):
    return signing.dumps({"uid": user.pk, "email": user.email}, salt=VERIFY_SALT)


def profile_patch(profile):
    """
    Fields derived from the free-form application answers, stored as
    columns so they can be filtered and counted.
    """
    if not isinstance(profile, dict):
        raise InvalidInput("Profile must be an object.")

    reimbursement_class = profile.get("appliedReimbursementClass") or ""
    if reimbursement_class and reimbursement_class not in REIMBURSEMENT_CLASSES:
        raise InvalidInput(f"Unknown reimbursement class: {reimbursement_class}")

    gender = profile.get("gender") or ""
    if gender and gender not in GENDERS:
        raise InvalidInput(f"Unknown gender: {gender}")

    team_selection = profile.get("teamSelection") or ""
    if team_selection and team_selection not in TEAM_SELECTIONS:
        raise InvalidInput(f"Unknown team selection: {team_selection}")

    terminal = profile.get("terminal") or {}
    essay = terminal.get("essay", "") if isinstance(terminal, dict) else ""

    return {
        "profile": profile,
        "applied_reimbursement_class": reimbursement_class,
        "needs_reimbursement": bool(profile.get("needsReimbursement")),
        "needs_visa": bool(profile.get("needsVisa")),
        "most_interesting_track": str(profile.get("mostInterestingTrack") or "")[:100],
        "gender": gender,
        "travel_from_country": str(profile.get("travelFromCountry") or "")[:100],
        "team_selection": team_selection,
        "terminal_essay": essay or "",
    }


class AdmissionService:
    @staticmethod
    def get_user(user_id):
        try:
            return User.objects.get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound("User not found.")

    @staticmethod
    def _apply(user, name, patch, extra=None):
        """
        Conditional single-row update for transition ``name``.

        ``extra`` adds filters on top of the transition predicate.
        Returns the refreshed user.
        """
        transition = get_transition(name)
        filters = dict(transition.requires)
        if extra:
            filters.update(extra)

        patch = dict(patch)
        patch.setdefault("last_updated", now())

        updated = User.objects.filter(pk=user.pk, **filters).update(**patch)
        if not updated:
            if not User.objects.filter(pk=user.pk).exists():
                raise NotFound("User not found.")
            logger.warning("Refused %s for user %s", name, user.pk)
            raise PreconditionFailed(transition.failure)

        logger.info("Applied %s to user %s", name, user.pk)
        return User.objects.get(pk=user.pk)

    # ─────────────────────────────────────────────────────────
    # Account
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def register(email, password, nickname="", special=False):
        email = normalize_email(email)
        check_password(password)

        times = RegistrationSettings.get_registration_times()
        ok, reason = check_registration_window(times, now_ms(), special)
        if not ok:
            raise PreconditionFailed(reason)

        if User.objects.filter(email__iexact=email).exists():
            raise PreconditionFailed("An account for this email already exists.")

        for _ in range(REGISTER_ATTEMPTS):
            try:
                with transaction.atomic():
                    user = User.objects.create_user(
                        username=email,
                        email=email,
                        password=password,
                        nickname=nickname or "",
                        special_registration=bool(special),
                    )
                break
            except IntegrityError:
                if User.objects.filter(email__iexact=email).exists():
                    raise PreconditionFailed("An account for this email already exists.")
                # Lost a race for the participant id, the next attempt picks a fresh one
                logger.warning("Participant id collision while registering, retrying")
        else:
            raise PreconditionFailed("Could not create the account, please try again.")

        logger.info("Registered user %s (%s)", user.pk, user.participant_id)
        notify(emails.send_verification_email, user, verification_token(user))
        return user

    @staticmethod
    def send_verification(user):
        if user.verified:
            raise PreconditionFailed("Your email is already verified.")
        notify(emails.send_verification_email, user, verification_token(user))

    @staticmethod
    def verify_email(token):
        try:
            data = signing.loads(token, salt=VERIFY_SALT)
        except signing.BadSignature:
            raise InvalidInput("Invalid verification token.")

        updated = User.objects.filter(pk=data.get("uid"), email=data.get("email")).update(
            verified=True, last_updated=now()
        )
        if not updated:
            raise NotFound("User not found.")

        logger.info("Verified email of user %s", data.get("uid"))
        return User.objects.get(pk=data["uid"])

    @staticmethod
    def update_email(user, email):
        email = normalize_email(email)
        if User.objects.filter(email__iexact=email).exclude(pk=user.pk).exists():
            raise PreconditionFailed("An account for this email already exists.")

        try:
            updated = User.objects.filter(pk=user.pk).update(email=email, username=email, last_updated=now())
        except IntegrityError:
            raise PreconditionFailed("An account for this email already exists.")
        if not updated:
            raise NotFound("User not found.")
        return User.objects.get(pk=user.pk)

    @staticmethod
    def toggle_special(user):
        user = AdmissionService.get_user(user.pk)
        updated = User.objects.filter(pk=user.pk, special_registration=user.special_registration).update(
            special_registration=not user.special_registration, last_updated=now()
        )
        if not updated:
            raise PreconditionFailed("User changed while updating, please try again.")
        return User.objects.get(pk=user.pk)

    # ─────────────────────────────────────────────────────────
    # Passwords
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def send_password_reset(email):
        """Always succeeds from the caller's point of view."""
        try:
            email = normalize_email(email)
        except InvalidInput:
            return
        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            logger.info("Password reset requested for unknown email")
            return
        notify(emails.send_password_reset_email, user, default_token_generator.make_token(user))

    @staticmethod
    def reset_password(user_id, token, password):
        check_password(password)
        user = User.objects.filter(pk=user_id).first()
        if user is None or not default_token_generator.check_token(user, token):
            raise InvalidInput("Invalid or expired password reset token.")

        user.set_password(password)
        user.save(update_fields=["password"])
        logger.info("Password reset for user %s", user.pk)
        notify(emails.send_password_changed_email, user)
        return user

    @staticmethod
    def admin_change_password(user, password):
        check_password(password)
        user = AdmissionService.get_user(user.pk)
        user.set_password(password)
        user.save(update_fields=["password"])
        logger.info("Password changed by admin for user %s", user.pk)
        return user

    # ─────────────────────────────────────────────────────────
    # Application
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def submit_profile(user, profile):
        patch = profile_patch(profile)
        patch["completed_profile"] = True

        times = RegistrationSettings.get_registration_times()
        ok, reason = check_application_window(times, now_ms(), user.special_registration)
        if not ok:
            raise PreconditionFailed(reason)

        user = AdmissionService._apply(user, SUBMIT_PROFILE, patch)

        # Only the request that flips the flag sends the email
        first = User.objects.filter(pk=user.pk, submitted_application=False).update(submitted_application=True)
        if first:
            user.submitted_application = True
            notify(emails.send_application_email, user)
        return user

    @staticmethod
    def admin_update_profile(user, profile):
        patch = profile_patch(profile)
        patch["completed_profile"] = True
        return AdmissionService._apply(user, ADMIN_UPDATE_PROFILE, patch)

    @staticmethod
    def confirm(user, confirmation):
        if not isinstance(confirmation, dict):
            raise InvalidInput("Confirmation must be an object.")

        user = AdmissionService.get_user(user.pk)
        ok, reason = can_transition(user, CONFIRM)
        if not ok:
            raise PreconditionFailed(reason)
        ok, reason = check_confirmation_deadline(user, now_ms())
        if not ok:
            raise PreconditionFailed(reason)

        # A confirmed user keeps confirming fine after the deadline; anyone else
        # must still be before it at write time.
        extra = None
        if not user.confirmed and user.confirm_by is not None:
            extra = {"confirm_by__gt": now_ms()}

        user = AdmissionService._apply(
            user, CONFIRM, {"confirmed": True, "confirmation": confirmation}, extra=extra
        )

        if user.team:
            team = Team.objects.filter(pk=user.team).first()
            if team is not None and team.leader == user.participant_id:
                TeamService.update_team_priorities(user, confirmation)

        notify(emails.send_confirmation_email, user)
        return user

    @staticmethod
    def decline(user):
        user = AdmissionService.get_user(user.pk)
        ok, reason = can_transition(user, DECLINE)
        if not ok:
            raise PreconditionFailed(reason)

        # Leaving first: an external failure aborts before anything changed here
        TeamService.leave_team(user)

        user = AdmissionService._apply(
            user, DECLINE, {"confirmed": False, "declined": True, "team": None}
        )
        notify(emails.send_declined_email, user)
        return user

    @staticmethod
    def submit_reimbursement(user, data):
        if not isinstance(data, dict):
            raise InvalidInput("Reimbursement must be an object.")

        times = RegistrationSettings.get_registration_times()
        ok, reason = check_reimbursement_deadline(times, now_ms())
        if not ok:
            raise PreconditionFailed(reason)

        return AdmissionService._apply(
            user, SUBMIT_REIMBURSEMENT, {"reimbursement": data, "reimbursement_applied": True}
        )

    # ─────────────────────────────────────────────────────────
    # Admin review
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def soft_admit(user, admin):
        return AdmissionService._apply(
            user, SOFT_ADMIT, {"soft_admitted": True, "admitted_by": admin.email}
        )

    @staticmethod
    def un_soft_admit(user, admin):
        return AdmissionService._apply(
            user, UN_SOFT_ADMIT, {"soft_admitted": False, "admitted_by": admin.email}
        )

    @staticmethod
    def admit(user, admin):
        times = RegistrationSettings.get_registration_times()
        confirm_by = confirm_by_for(times, now_ms())

        user = AdmissionService._apply(
            user, ADMIT, {"admitted": True, "admitted_by": admin.email, "confirm_by": confirm_by}
        )

        # Applicants who wrote a terminal essay opted into the terminal track
        if user.terminal_essay:
            notify(emails.send_admittance_terminal_email, user)
        else:
            notify(emails.send_admittance_email, user)
        return user

    @staticmethod
    def accept_terminal(user):
        return AdmissionService._apply(user, ACCEPT_TERMINAL, {"terminal_accepted": True})

    @staticmethod
    def reject(user):
        return AdmissionService._apply(user, REJECT, {"rejected": True})

    @staticmethod
    def unreject(user):
        return AdmissionService._apply(user, UNREJECT, {"rejected": False})

    @staticmethod
    def accept_travel_class(user, reimbursement_class):
        reimbursement_class = reimbursement_class or User.REIMBURSEMENT_NONE
        if reimbursement_class not in REIMBURSEMENT_CLASSES:
            raise InvalidInput(f"Unknown reimbursement class: {reimbursement_class}")
        return AdmissionService._apply(
            user, ACCEPT_TRAVEL_CLASS, {"accepted_reimbursement_class": reimbursement_class}
        )

    @staticmethod
    def rate(user, rating):
        try:
            rating = int(rating)
        except (TypeError, ValueError):
            raise InvalidInput("Rating must be a number between 0 and 5.")
        if not 0 <= rating <= 5:
            raise InvalidInput("Rating must be a number between 0 and 5.")
        return AdmissionService._apply(user, RATE, {"rating": rating})

    @staticmethod
    def check_in(user):
        return AdmissionService._apply(user, CHECK_IN, {"checked_in": True, "check_in_time": now_ms()})

    @staticmethod
    def check_out(user):
        return AdmissionService._apply(user, CHECK_OUT, {"checked_in": False})

    # ─────────────────────────────────────────────────────────
    # Batch operations
    #
    # One multi-row UPDATE each. Records are matched independently, so a
    # record that changes concurrently is simply counted or skipped.
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def _mass_reject_q():
        return (
            Q(special_registration=False, admitted=False, soft_admitted=False)
            & (~Q(travel_from_country__iexact="Finland") | Q(travel_from_country__iexact="Finland", rating__lt=4))
        )

    @staticmethod
    def rejection_count():
        return User.objects.filter(AdmissionService._mass_reject_q(), rejected=False).count()

    @staticmethod
    def mass_reject():
        count = User.objects.filter(AdmissionService._mass_reject_q()).update(rejected=True, last_updated=now())
        logger.info("Mass rejected %s users", count)
        return count

    @staticmethod
    def rejection_rest_count():
        return User.objects.filter(admitted=False, soft_admitted=False, rejected=False).count()

    @staticmethod
    def later_rejection_count():
        return User.objects.filter(rejected=True, later_rejected=True, waitlist=True).count()

    @staticmethod
    def mass_reject_rest():
        count = User.objects.filter(admitted=False, soft_admitted=False).update(
            rejected=True, later_rejected=True, last_updated=now()
        )
        logger.info("Mass rejected %s remaining users", count)
        return count

    @staticmethod
    def set_on_waitlist():
        count = User.objects.filter(rejected=False, soft_admitted=False, admitted=False).update(
            waitlist=True, last_updated=now()
        )
        logger.info("Put %s users on the waitlist", count)
        return count

    @staticmethod
    def update_confirm_by_for_all(special):
        special = bool(special)
        times = RegistrationSettings.get_registration_times()
        confirm_by = times["timeConfirmSpecial"] if special else times["timeConfirm"]
        count = User.objects.filter(
            verified=True, soft_admitted=True, admitted=True, rejected=False, waitlist=special
        ).update(confirm_by=confirm_by)
        logger.info("Moved confirmation deadline of %s users (special=%s)", count, special)
        return count

    @staticmethod
    def send_reject_emails():
        users = list(User.objects.filter(rejected=True))
        try:
            return emails.send_reject_emails(users)
        except Exception as e:
            logger.warning("Sending rejection emails failed: %s", e)
            return 0

    @staticmethod
    def send_reject_emails_rest():
        # Waitlisted applicants that the final sweep rejected
        users = list(User.objects.filter(rejected=True, later_rejected=True, waitlist=True))
        try:
            return emails.send_reject_emails(users)
        except Exception as e:
            logger.warning("Sending later rejection emails failed: %s", e)
            return 0

    @staticmethod
    def send_reject_email(user):
        user = AdmissionService.get_user(user.pk)
        if not user.rejected:
            raise PreconditionFailed("Only rejected applicants can be sent a rejection email.")
        notify(emails.send_reject_emails, [user])
        return user

    # ─────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def team_locked_map(users):
        team_ids = {u.team for u in users if u.team}
        if not team_ids:
            return {}
        return dict(Team.objects.filter(pk__in=team_ids).values_list("pk", "team_locked"))

    @staticmethod
    def is_team_locked(user):
        if not user.team:
            return False
        return Team.objects.filter(pk=user.team, team_locked=True).exists()

    @staticmethod
    def get_page(query: UserQuery):
        qs = query.apply(User.objects.all())
        count = qs.count()
        offset = query.page * query.size
        users = list(qs[offset:offset + query.size])
        return {
            "users": users,
            "team_locked": AdmissionService.team_locked_map(users),
            "page": query.page,
            "size": query.size,
            "total_pages": math.ceil(count / query.size),
            "count": count,
        }
