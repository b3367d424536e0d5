# core/stats.py
"""
Aggregate statistics for the admin dashboard.

Snapshots are computed by background tasks (core.tasks) on a fixed interval
and stored in the Django cache. Readers only ever get the last snapshot,
never a fresh computation.
"""
from collections import Counter, defaultdict
import logging

from django.contrib.auth import get_user_model
from django.core.cache import cache

from .datetime_utils import now
from .models import RegistrationSettings

logger = logging.getLogger("hackreg.stats")

USER_STATS_KEY = "hackreg:stats:users"
TEAM_STATS_KEY = "hackreg:stats:teams"

SHIRT_SIZES = ["XS", "S", "M", "L", "XL", "XXL", "WXS", "WS", "WM", "WL", "WXL", "WXXL", "None"]
GENDERS = ["M", "F", "O", "N"]
PAID_CLASSES = ["Finland", "Baltics", "Nordics", "Europe", "RestOfTheWorld", "GoldenTicket"]


def _email_domain(email):
    return email.rsplit("@", 1)[-1].lower() if email and "@" in email else ""


def _dict(value):
    return value if isinstance(value, dict) else {}


def compute_user_stats(users, amounts):
    """
    Pure aggregation over an iterable of users.

    ``amounts`` maps accepted travel class -> reimbursed amount.
    """
    tracks = Counter()
    applied_tracks = Counter()
    admitted_tracks = Counter()
    confirmed_tracks = Counter()
    gender = Counter({g: 0 for g in GENDERS})
    confirmed_gender = Counter({g: 0 for g in GENDERS})
    host_gender = Counter({g: 0 for g in GENDERS})
    team_selection = Counter({"alone": 0, "teamOrAlone": 0, "onlyTeam": 0})
    rated_stars = Counter({star: 0 for star in range(1, 6)})
    shirt_sizes = Counter({size: 0 for size in SHIRT_SIZES})
    dietary = Counter()
    requested = Counter({c: 0 for c in PAID_CLASSES})
    accepted = Counter({c: 0 for c in PAID_CLASSES + ["Rejected"]})
    confirmed_classes = Counter({c: 0 for c in PAID_CLASSES + ["Rejected"]})
    schools = defaultdict(lambda: {"submitted": 0, "admitted": 0, "confirmed": 0, "declined": 0})

    stats = Counter()
    amount_accepted = 0
    amount_confirmed = 0

    for user in users:
        confirmation = _dict(user.confirmation)
        track = user.most_interesting_track

        stats["total"] += 1
        if user.gender:
            gender[user.gender] += 1

        if track:
            tracks[track] += 1
            if user.completed_profile and not user.admitted and not user.confirmed:
                applied_tracks[track] += 1
            if user.admitted and user.completed_profile and not user.confirmed:
                admitted_tracks[track] += 1
            if user.confirmed:
                confirmed_tracks[track] += 1

        stats["verified"] += user.verified
        stats["submitted"] += user.completed_profile
        stats["rated"] += user.rating > 0
        if user.rating:
            rated_stars[user.rating] += 1
        if user.team_selection:
            team_selection[user.team_selection] += 1

        stats["soft_admitted"] += user.soft_admitted
        stats["admitted"] += user.admitted
        stats["confirmed"] += user.confirmed
        stats["declined"] += user.declined
        stats["rejected"] += user.rejected
        stats["special_registration"] += user.special_registration
        stats["checked_in"] += user.checked_in
        if user.confirmed and user.gender:
            confirmed_gender[user.gender] += 1

        # Travel reimbursement
        stats["reimbursement_total"] += user.needs_reimbursement
        if user.applied_reimbursement_class in requested:
            requested[user.applied_reimbursement_class] += 1

        accepted_class = user.accepted_reimbursement_class
        if not user.declined and accepted_class in accepted:
            accepted[accepted_class] += 1
            amount_accepted += amounts.get(accepted_class, 0)
            if user.confirmed:
                confirmed_classes[accepted_class] += 1
                amount_confirmed += amounts.get(accepted_class, 0)

        stats["reimbursement_missing"] += bool(confirmation.get("needsReimbursement")) and not user.reimbursement_given
        stats["wants_hardware"] += bool(confirmation.get("wantsHardware"))

        # Confirmation details
        if confirmation.get("shirtSize") in shirt_sizes:
            shirt_sizes[confirmation["shirtSize"]] += 1

        host_fri = bool(confirmation.get("hostNeededFri"))
        host_sat = bool(confirmation.get("hostNeededSat"))
        stats["host_needed_fri"] += host_fri
        stats["host_needed_sat"] += host_sat
        if host_fri or host_sat:
            stats["host_needed_unique"] += 1
            if user.gender:
                host_gender[user.gender] += 1

        for restriction in confirmation.get("dietaryRestrictions") or []:
            dietary[str(restriction)] += 1

        school = schools[_email_domain(user.email)]
        school["submitted"] += user.completed_profile
        school["admitted"] += user.admitted
        school["confirmed"] += user.confirmed
        school["declined"] += user.declined

    return {
        "last_updated": now().isoformat(),
        "total": stats["total"],
        "demo": {
            "gender": dict(gender),
            "tracks": dict(tracks),
            "schools": [
                {"email": domain, "count": counts["submitted"], "stats": counts}
                for domain, counts in sorted(schools.items())
            ],
        },
        "applied_stats": {"tracks": dict(applied_tracks)},
        "admitted_stats": {"tracks": dict(admitted_tracks)},
        "confirmed_stats": {"tracks": dict(confirmed_tracks)},
        "teams": dict(team_selection),
        "verified": stats["verified"],
        "submitted": stats["submitted"],
        "rated": stats["rated"],
        "rated_stars": {str(k): v for k, v in sorted(rated_stars.items())},
        "soft_admitted": stats["soft_admitted"],
        "admitted": stats["admitted"],
        "confirmed": stats["confirmed"],
        "declined": stats["declined"],
        "rejected": stats["rejected"],
        "special_registration": stats["special_registration"],
        "confirmed_gender": dict(confirmed_gender),
        "shirt_sizes": dict(shirt_sizes),
        "dietary_restrictions": [{"name": k, "count": v} for k, v in sorted(dietary.items())],
        "host_needed_fri": stats["host_needed_fri"],
        "host_needed_sat": stats["host_needed_sat"],
        "host_needed_unique": stats["host_needed_unique"],
        "host_needed_gender": dict(host_gender),
        "reimbursement_total": stats["reimbursement_total"],
        "reimbursement_missing": stats["reimbursement_missing"],
        "reimbursement_requested": dict(requested),
        "reimbursement_accepted": dict(accepted),
        "reimbursement_confirmed": dict(confirmed_classes),
        "reimbursement_amount_accepted": amount_accepted,
        "reimbursement_amount_confirmed": amount_confirmed,
        "wants_hardware": stats["wants_hardware"],
        "checked_in": stats["checked_in"],
    }


def compute_team_stats(teams):
    """Team count and number of members per assigned track."""
    track_assignment = Counter()
    total = 0
    for team in teams:
        total += 1
        if team.assigned_track:
            track_assignment[team.assigned_track] += len(team.members)
    return {
        "last_updated": now().isoformat(),
        "total": total,
        "track_assignment": dict(track_assignment),
    }


class StatsCache:
    """
    Owner of the stats snapshots. ``refresh_*`` recompute and store,
    ``get_*`` return the last stored snapshot ({} before the first refresh).
    """

    def __init__(self, backend=None):
        self.backend = backend or cache

    def refresh_user_stats(self):
        User = get_user_model()
        amounts = RegistrationSettings.load().reimbursement_amounts()
        snapshot = compute_user_stats(User.objects.filter(is_staff=False).iterator(), amounts)
        self.backend.set(USER_STATS_KEY, snapshot, timeout=None)
        logger.info("User stats updated (%s users)", snapshot["total"])
        return snapshot

    def refresh_team_stats(self):
        from teams.models import Team

        snapshot = compute_team_stats(Team.objects.all().iterator())
        self.backend.set(TEAM_STATS_KEY, snapshot, timeout=None)
        logger.info("Team stats updated (%s teams)", snapshot["total"])
        return snapshot

    def get_user_stats(self):
        return self.backend.get(USER_STATS_KEY) or {}

    def get_team_stats(self):
        return self.backend.get(TEAM_STATS_KEY) or {}
