# teams/matchmaking.py
"""
Team matchmaking: participants looking for a team, and teams looking for
members, publish a short profile that others can search through.

Enrollment lives on the User row and is independent of membership, except
that creating or joining a team clears it (see teams.services).
"""
import logging
import math

from django.contrib.auth import get_user_model
from django.db.models import Q

from core.datetime_utils import now
from core.exceptions import InvalidInput, NotFound, PreconditionFailed
from users.state_machine import UPDATE_MATCHMAKING, get_transition

from .models import Team

logger = logging.getLogger("hackreg.teams")

User = get_user_model()

INDIVIDUAL = "individual"
TEAM = "team"

SEARCH_TYPES = {
    "individuals": INDIVIDUAL,
    "teams": TEAM,
}

SEARCH_FIELDS = {
    INDIVIDUAL: ["mostInterestingTrack", "role", "slackHandle", "skills"],
    TEAM: ["mostInterestingTrack", "roles", "slackHandle", "topChallenges"],
}

MAX_PAGE_SIZE = 100


class MatchmakingService:
    @staticmethod
    def update_matchmaking_profile(user, enrollment_type, data):
        if enrollment_type not in (INDIVIDUAL, TEAM):
            raise InvalidInput("Enrollment type must be 'individual' or 'team'.")
        if not isinstance(data, dict):
            raise InvalidInput("Matchmaking profile must be an object.")

        on_team = MatchmakingService._on_team(user)

        if enrollment_type == INDIVIDUAL and on_team:
            raise PreconditionFailed("You're already on a team, search for members as a team instead.")
        if enrollment_type == TEAM and not on_team:
            raise PreconditionFailed("You're not on a team.")

        patch = {
            "matchmaking_enrolled": True,
            "matchmaking_enrollment_type": enrollment_type,
            "last_updated": now(),
        }
        if enrollment_type == INDIVIDUAL:
            patch["matchmaking_individual"] = data
        else:
            patch["matchmaking_team"] = data

        transition = get_transition(UPDATE_MATCHMAKING)
        updated = User.objects.filter(pk=user.pk, **transition.requires).update(**patch)
        if not updated:
            if not User.objects.filter(pk=user.pk).exists():
                raise NotFound("User not found")
            raise PreconditionFailed(transition.failure)

        logger.info("User %s enrolled in matchmaking as %s", user.pk, enrollment_type)
        return User.objects.get(pk=user.pk)

    @staticmethod
    def _on_team(user):
        if not user.team:
            return False
        team = Team.objects.filter(pk=user.team).first()
        return team is not None and team.has_member(user.participant_id)

    @staticmethod
    def exit_search(user):
        updated = User.objects.filter(pk=user.pk, matchmaking_enrolled=True).update(
            matchmaking_enrolled=False, matchmaking_enrollment_type=""
        )
        if not updated:
            if not User.objects.filter(pk=user.pk).exists():
                raise NotFound("User not found")
            raise PreconditionFailed("You're not in the matchmaking search.")

        logger.info("User %s left matchmaking", user.pk)
        return User.objects.get(pk=user.pk)

    @staticmethod
    def team_in_search(user):
        """Whether anyone on the user's team is already enrolled."""
        if not user.team:
            return False
        return User.objects.filter(team=user.team, matchmaking_enrolled=True).exists()

    @staticmethod
    def search(search_type, text="", page=0, size=20):
        enrollment_type = SEARCH_TYPES.get(search_type)
        if enrollment_type is None:
            raise InvalidInput("Search type must be 'individuals' or 'teams'.")
        if page < 0 or not 1 <= size <= MAX_PAGE_SIZE:
            raise InvalidInput(f"Page must not be negative and size must be between 1 and {MAX_PAGE_SIZE}.")

        column = "matchmaking_individual" if enrollment_type == INDIVIDUAL else "matchmaking_team"
        qs = User.objects.filter(matchmaking_enrolled=True, matchmaking_enrollment_type=enrollment_type)

        text = (text or "").strip()
        if text:
            text_q = Q()
            for key in SEARCH_FIELDS[enrollment_type]:
                text_q |= Q(**{f"{column}__{key}__icontains": text})
            qs = qs.filter(text_q)

        qs = qs.order_by("-last_updated", "pk")
        count = qs.count()
        rows = qs[page * size:(page + 1) * size]

        results = []
        for u in rows:
            entry = dict(getattr(u, column) or {})
            if enrollment_type == TEAM:
                entry["team"] = str(u.team) if u.team else None
            results.append(entry)

        return {
            "results": results,
            "page": page,
            "size": size,
            "total_pages": math.ceil(count / size),
        }
