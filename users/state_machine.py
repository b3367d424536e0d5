# users/state_machine.py
"""
Admission state machine.

A participant's admission status is a vector of flags:

registered → verified → completed_profile → soft_admitted → admitted → confirmed
                                              └→ rejected / waitlist / later_rejected
                                                      admitted └→ declined

Every transition is a conditional update: the field values in ``requires``
must hold on the stored record at write time, otherwise nothing is written
and ``failure`` is reported. The same ``requires`` map is used both for the
pure check on an in-memory user (``can_transition``) and as the filter of the
single-row UPDATE in users.services, so a record that changed between read
and write fails closed.

Time-window guards are plain functions of (times, now) returning
(ok: bool, reason: str). ``times`` is the dict from
RegistrationSettings.get_registration_times(); ``now`` is epoch ms.
"""
from dataclasses import dataclass, field
from typing import Dict, Tuple
import logging

from core.datetime_utils import time_until_ms

logger = logging.getLogger("hackreg.users")


SUBMIT_PROFILE = "submit_profile"
ADMIN_UPDATE_PROFILE = "admin_update_profile"
SOFT_ADMIT = "soft_admit"
UN_SOFT_ADMIT = "un_soft_admit"
ADMIT = "admit"
ACCEPT_TERMINAL = "accept_terminal"
CONFIRM = "confirm"
DECLINE = "decline"
REJECT = "reject"
UNREJECT = "unreject"
ACCEPT_TRAVEL_CLASS = "accept_travel_class"
RATE = "rate"
CHECK_IN = "check_in"
CHECK_OUT = "check_out"
SUBMIT_REIMBURSEMENT = "submit_reimbursement"
UPDATE_MATCHMAKING = "update_matchmaking"


@dataclass(frozen=True)
class Transition:
    name: str
    requires: Dict[str, object] = field(default_factory=dict)
    failure: str = "This action is not allowed right now."


_TRANSITIONS = [
    Transition(
        SUBMIT_PROFILE,
        {"verified": True},
        "Please verify your email before submitting your application.",
    ),
    Transition(
        ADMIN_UPDATE_PROFILE,
        {"verified": True},
        "Only verified users have a profile to update.",
    ),
    Transition(
        SOFT_ADMIT,
        {"verified": True, "rejected": False},
        "Only verified, non-rejected applicants can be soft admitted.",
    ),
    Transition(
        UN_SOFT_ADMIT,
        {"verified": True, "rejected": False, "admitted": False},
        "Only verified, non-rejected applicants who are not admitted yet can be un-soft-admitted.",
    ),
    Transition(
        ADMIT,
        {"verified": True, "soft_admitted": True, "rejected": False},
        "Only verified, soft admitted and non-rejected applicants can be admitted.",
    ),
    Transition(
        ACCEPT_TERMINAL,
        {"verified": True, "soft_admitted": True, "rejected": False},
        "Only verified, soft admitted and non-rejected applicants can be accepted to terminal.",
    ),
    Transition(
        CONFIRM,
        {"verified": True, "admitted": True, "declined": False},
        "You can only confirm acceptance if you're admitted and haven't declined.",
    ),
    Transition(
        DECLINE,
        {"verified": True, "admitted": True, "declined": False},
        "You can only decline if you're admitted and haven't declined already.",
    ),
    Transition(
        REJECT,
        {"verified": True, "admitted": False, "declined": False, "rejected": False},
        "Only verified applicants who are not admitted, declined or rejected can be rejected.",
    ),
    Transition(
        UNREJECT,
        {"verified": True, "declined": False, "rejected": True},
        "Only rejected applicants can be unrejected.",
    ),
    Transition(
        ACCEPT_TRAVEL_CLASS,
        {"soft_admitted": True},
        "Travel class can only be set for soft admitted applicants.",
    ),
    Transition(RATE),
    Transition(
        CHECK_IN,
        {"verified": True},
        "Only verified users can be checked in.",
    ),
    Transition(
        CHECK_OUT,
        {"verified": True},
        "Only verified users can be checked out.",
    ),
    Transition(
        SUBMIT_REIMBURSEMENT,
        {"verified": True, "admitted": True, "declined": False},
        "You can only apply for travel reimbursement if you're admitted and haven't declined.",
    ),
    Transition(
        UPDATE_MATCHMAKING,
        {"verified": True},
        "Please verify your email before joining team matchmaking.",
    ),
]

TRANSITIONS = {t.name: t for t in _TRANSITIONS}


def get_transition(name: str) -> Transition:
    try:
        return TRANSITIONS[name]
    except KeyError:
        raise ValueError(f"Unknown transition: {name}")


def can_transition(user, name: str) -> Tuple[bool, str]:
    """
    Check a transition's predicate against an in-memory user.

    Returns (can_transition: bool, reason: str)
    """
    transition = TRANSITIONS.get(name)
    if transition is None:
        return False, f"Unknown transition: {name}"

    for field_name, expected in transition.requires.items():
        if getattr(user, field_name) != expected:
            return False, transition.failure

    return True, ""


# ─────────────────────────────────────────────────────────────
# Time windows
# ─────────────────────────────────────────────────────────────

def check_registration_window(times: dict, now: int, special: bool) -> Tuple[bool, str]:
    """
    Account creation is open in [timeOpen, timeClose]; specially registered
    applicants may register until timeCloseSpecial.
    """
    if special and now <= times["timeCloseSpecial"]:
        return True, ""

    if now < times["timeOpen"]:
        return False, f"Registration opens in {time_until_ms(times['timeOpen'])}!"

    if now > times["timeClose"]:
        return False, "Sorry, registration is closed."

    return True, ""


def check_application_window(times: dict, now: int, special: bool) -> Tuple[bool, str]:
    """Same window as registration, applied to profile submission."""
    special_open = special and now < times["timeCloseSpecial"]

    if now < times["timeOpen"]:
        return False, f"Registration opens in {time_until_ms(times['timeOpen'])}!"

    if now > times["timeClose"] and not special_open:
        return False, "Sorry, registration is closed."

    return True, ""


def check_confirmation_deadline(user, now: int) -> Tuple[bool, str]:
    """
    Confirming after confirm_by fails, unless the user already confirmed,
    which keeps re-confirming idempotent.
    """
    if user.confirmed:
        return True, ""
    if user.confirm_by is not None and now >= user.confirm_by:
        return False, "You've missed the confirmation deadline."
    return True, ""


def check_reimbursement_deadline(times: dict, now: int) -> Tuple[bool, str]:
    if now > times["timeTR"]:
        return False, "You've missed the TR deadline."
    return True, ""


def check_team_window(user, times: dict, now: int, action: str = "join") -> Tuple[bool, str]:
    """
    Whether the user may create or join a team right now.

    - declined users can not be on a team at all
    - applicants that are not admitted need an open (or special) registration window
    - admitted applicants must not have let their confirmation deadline pass
    """
    if user.declined:
        return False, "You have declined your spot, so you can not be part of a team."

    special_open = user.special_registration and now < times["timeCloseSpecial"]
    if not user.admitted and now > times["timeClose"] and not special_open:
        if action == "create":
            return False, (
                "You can not create new teams, because you haven't been accepted yet "
                "and application period is over."
            )
        return False, (
            "Application period has ended, you haven't been accepted yet "
            "so you can not join teams!"
        )

    ok, reason = check_confirmation_deadline(user, now)
    if not ok:
        return False, reason

    return True, ""


def confirm_by_for(times: dict, now: int) -> int:
    """
    Deadline handed out on admission: the normal confirmation deadline while
    it is still ahead, the special one once it has passed.
    """
    if times["timeConfirm"] < now:
        return times["timeConfirmSpecial"]
    return times["timeConfirm"]
