# teams/services.py
"""
Team membership engine.

Keeps User.team and Team.members pointing at each other. There is no
transaction spanning the two rows: the Team row is written first, then the
User row, so a crash in between leaves a user referencing a team that does
not list them (or the reverse). Readers treat that as "no team".

Every write re-reads the Team and is a compare-and-swap on ``revision``
(or on a predicate such as ``team_locked=False``). A lost race re-reads,
re-validates and retries up to TEAM_WRITE_ATTEMPTS times.
"""
import logging
import uuid

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import F

from core.datetime_utils import now_ms
from core.exceptions import ExternalServiceError, InvalidInput, NotFound, PreconditionFailed
from core.models import RegistrationSettings
from users.state_machine import check_team_window

from .gavel import GavelError, get_gavel_client
from .models import Team

logger = logging.getLogger("hackreg.teams")

User = get_user_model()

CLEARED_MATCHMAKING = {
    "matchmaking_enrolled": False,
    "matchmaking_enrollment_type": "",
    "matchmaking_team": {},
}


def write_attempts():
    return max(1, int(getattr(settings, "TEAM_WRITE_ATTEMPTS", 3)))


def display_name(user):
    return user.name or user.nickname or user.email


class TeamService:
    @staticmethod
    def _fresh_user(user):
        try:
            return User.objects.get(pk=user.pk)
        except User.DoesNotExist:
            raise NotFound("User not found")

    @staticmethod
    def _live_team(user):
        """The team the user references, if it exists and lists them."""
        if not user.team:
            return None
        team = Team.objects.filter(pk=user.team).first()
        if team is None or not team.has_member(user.participant_id):
            return None
        return team

    @staticmethod
    def _cas(team, **changes):
        """Write ``changes`` only if nobody touched the team since it was read."""
        updated = Team.objects.filter(pk=team.pk, revision=team.revision).update(
            revision=F("revision") + 1, **changes
        )
        return bool(updated)

    @staticmethod
    def _check_window(user, action):
        if not user.verified:
            raise PreconditionFailed("Please verify your email before joining a team.")
        times = RegistrationSettings.get_registration_times()
        ok, reason = check_team_window(user, times, now_ms(), action)
        if not ok:
            logger.warning("Refused team %s for user %s: %s", action, user.pk, reason)
            raise PreconditionFailed(reason)

    @staticmethod
    def _remove_member(team_id, participant_id):
        """
        Drop ``participant_id`` from the team, handing leadership to the first
        remaining member and deleting the team once it is empty.

        Returns the updated team, or None if it was deleted or did not list
        the member.
        """
        for _ in range(write_attempts()):
            team = Team.objects.filter(pk=team_id).first()
            if team is None or not team.has_member(participant_id):
                return None

            remaining = [m for m in team.members if m != participant_id]
            if not remaining:
                deleted, _ = Team.objects.filter(pk=team.pk, revision=team.revision).delete()
                if deleted:
                    logger.info("Deleted team with id %s", team.pk)
                    return None
                continue

            leader = team.leader
            if leader == participant_id or leader not in remaining:
                leader = remaining[0]
                logger.info("New leader of team %s is %s", team.pk, leader)

            if TeamService._cas(team, members=remaining, leader=leader):
                return Team.objects.get(pk=team.pk)

        raise PreconditionFailed("The team changed while updating, please try again.")

    # ─────────────────────────────────────────────────────────
    # Membership
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def create_team(user):
        user = TeamService._fresh_user(user)
        TeamService._check_window(user, "create")

        if TeamService._live_team(user) is not None:
            raise PreconditionFailed("You're already on a team. Leave it before creating a new one.")

        team = Team.objects.create(leader=user.participant_id, members=[user.participant_id])
        updated = User.objects.filter(pk=user.pk, verified=True).update(team=team.pk, **CLEARED_MATCHMAKING)
        if not updated:
            team.delete()
            raise NotFound("User not found")

        logger.info("New team created with id %s by %s", team.pk, user.participant_id)
        return team

    @staticmethod
    def join_team(user, code):
        if not code or not isinstance(code, str):
            raise InvalidInput("Please enter a team name.")
        try:
            team_id = uuid.UUID(code.strip())
        except ValueError:
            raise NotFound("Team not found")

        user = TeamService._fresh_user(user)

        for _ in range(write_attempts()):
            team = Team.objects.filter(pk=team_id).first()
            if team is None:
                raise NotFound("Team not found")
            if team.has_member(user.participant_id):
                raise PreconditionFailed("User is already in this team!")
            if team.is_full:
                raise PreconditionFailed("Team is full.")
            if team.team_locked:
                raise PreconditionFailed("This team is locked.")

            TeamService._check_window(user, "join")

            current = TeamService._live_team(user)
            if current is not None:
                raise PreconditionFailed("You're already on a team. Leave it before joining another one.")

            if TeamService._cas(team, members=team.members + [user.participant_id]):
                break
        else:
            raise PreconditionFailed("The team changed while joining, please try again.")

        user_patch = dict(CLEARED_MATCHMAKING, team=team.pk)

        if team.gavel_id:
            try:
                member = get_gavel_client().add_member(team.gavel_id, display_name(user), user.email)
            except GavelError as e:
                TeamService._remove_member(team.pk, user.participant_id)
                logger.error("Could not register %s with the judging platform, join undone: %s", user.participant_id, e)
                raise ExternalServiceError("Could not register you with the judging platform, please try again.")
            user_patch["gavel_id"] = member["memberId"]
            user_patch["gavel_token"] = member.get("token", "")

        User.objects.filter(pk=user.pk).update(**user_patch)
        logger.info("User %s joined team %s", user.participant_id, team.pk)
        return Team.objects.filter(pk=team.pk).first()

    @staticmethod
    def leave_team(user):
        """
        Leave the current team. Safe to call without a team: the user's team
        reference and matchmaking data are cleared either way.
        """
        user = TeamService._fresh_user(user)
        team = Team.objects.filter(pk=user.team).first() if user.team else None

        if team is not None and team.has_member(user.participant_id):
            if team.gavel_id and user.gavel_id:
                try:
                    get_gavel_client().remove_member(team.gavel_id, user.gavel_id)
                except GavelError as e:
                    logger.error("Could not remove %s from the judging platform: %s", user.participant_id, e)
                    raise ExternalServiceError("Could not leave the team on the judging platform, please try again.")
            TeamService._remove_member(team.pk, user.participant_id)
            logger.info("User %s left team %s", user.participant_id, team.pk)
        else:
            logger.info("Team not found or user not in the team anymore, removing user team data though.")

        User.objects.filter(pk=user.pk).update(team=None, gavel_id="", gavel_token="", **CLEARED_MATCHMAKING)
        return User.objects.get(pk=user.pk)

    @staticmethod
    def kick_from_team(leader, participant_id):
        if not participant_id or not isinstance(participant_id, str):
            raise InvalidInput("Please choose a team member.")

        leader = TeamService._fresh_user(leader)
        team = TeamService._live_team(leader)
        if team is None:
            raise NotFound("Team not found")
        if team.leader != leader.participant_id:
            raise PreconditionFailed("You're not the team leader!")
        if team.team_locked:
            raise PreconditionFailed("This team is locked.")
        if participant_id == leader.participant_id:
            raise PreconditionFailed("You can not kick yourself, leave the team instead.")

        target = User.objects.filter(participant_id=participant_id, team=team.pk).first()
        if target is None or not team.has_member(participant_id):
            raise NotFound("User not found!")

        if team.gavel_id and target.gavel_id:
            try:
                get_gavel_client().remove_member(team.gavel_id, target.gavel_id)
            except GavelError as e:
                logger.error("Could not remove %s from the judging platform: %s", participant_id, e)
                raise ExternalServiceError("Could not remove the member on the judging platform, please try again.")

        User.objects.filter(pk=target.pk, team=team.pk).update(
            team=None, gavel_id="", gavel_token="", **CLEARED_MATCHMAKING
        )
        team = TeamService._remove_member(team.pk, participant_id)
        logger.info("Kicked %s from team %s", participant_id, getattr(team, "pk", None))
        return team

    # ─────────────────────────────────────────────────────────
    # Leader actions
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def lock_team(user, track_interests):
        if not isinstance(track_interests, list):
            raise InvalidInput("Track interests must be a list.")

        user = TeamService._fresh_user(user)
        team = TeamService._live_team(user)
        if team is None:
            raise NotFound("Team not found")
        if team.leader != user.participant_id:
            raise PreconditionFailed("Only team leader can lock in the team")
        if team.team_locked:
            raise PreconditionFailed("Team already locked!")

        updated = Team.objects.filter(pk=team.pk, leader=user.participant_id, team_locked=False).update(
            team_locked=True, track_interests=track_interests, revision=F("revision") + 1
        )
        if not updated:
            team = Team.objects.filter(pk=team.pk).first()
            if team is None:
                raise NotFound("Team not found")
            if team.team_locked:
                raise PreconditionFailed("Team already locked!")
            raise PreconditionFailed("Only team leader can lock in the team")

        logger.info("Team %s locked", team.pk)
        return Team.objects.get(pk=team.pk)

    @staticmethod
    def update_team_priorities(user, priorities):
        if not isinstance(priorities, dict):
            raise InvalidInput("Priorities must be an object.")

        user = TeamService._fresh_user(user)
        team = TeamService._live_team(user)
        if team is None:
            raise NotFound("Team not found")

        updated = Team.objects.filter(pk=team.pk, leader=user.participant_id).update(
            first_priority_track=str(priorities.get("firstPriorityTrack") or "")[:100],
            second_priority_track=str(priorities.get("secondPriorityTrack") or "")[:100],
            third_priority_track=str(priorities.get("thirdPriorityTrack") or "")[:100],
            revision=F("revision") + 1,
        )
        if not updated:
            raise PreconditionFailed("Only the team leader can set track priorities.")

        logger.info("Team %s track priorities updated", team.pk)
        return Team.objects.get(pk=team.pk)

    # ─────────────────────────────────────────────────────────
    # Judging platform
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def get_gavel_token(user):
        """
        The user's submission token. Provisions the team on the judging
        platform on the first request of any member; later requests from
        members without a token register just that member.
        """
        user = TeamService._fresh_user(user)
        if user.gavel_token:
            return user.gavel_token

        team = TeamService._live_team(user)
        if team is None:
            raise PreconditionFailed("You're not on a team.")

        client = get_gavel_client()

        if not team.gavel_id:
            members = list(User.objects.filter(participant_id__in=team.members, team=team.pk))
            try:
                result = client.create_team(
                    [{"name": display_name(m), "email": m.email} for m in members],
                    phone=str(user.profile.get("phone", "")) if isinstance(user.profile, dict) else "",
                )
            except GavelError as e:
                logger.error("Could not provision team %s on the judging platform: %s", team.pk, e)
                raise ExternalServiceError("Could not reach the judging platform, please try again.")

            claimed = Team.objects.filter(pk=team.pk, gavel_id="").update(
                gavel_id=result["teamId"], revision=F("revision") + 1
            )
            if claimed:
                logger.info("Team %s provisioned on the judging platform as %s", team.pk, result["teamId"])
                for member in result.get("members", []):
                    User.objects.filter(email__iexact=member.get("email", ""), team=team.pk).update(
                        gavel_id=member.get("memberId", ""), gavel_token=member.get("token", "")
                    )
                user = User.objects.get(pk=user.pk)
                if user.gavel_token:
                    return user.gavel_token
            else:
                logger.warning("Team %s was provisioned concurrently, dropping %s", team.pk, result["teamId"])

            team = Team.objects.filter(pk=team.pk).first()
            if team is None:
                raise NotFound("Team not found")

        try:
            member = client.add_member(team.gavel_id, display_name(user), user.email)
        except GavelError as e:
            logger.error("Could not register %s on the judging platform: %s", user.participant_id, e)
            raise ExternalServiceError("Could not reach the judging platform, please try again.")

        token = member.get("token", "")
        User.objects.filter(pk=user.pk).update(gavel_id=member["memberId"], gavel_token=token)
        return token

    # ─────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def get_team_info(user):
        user = TeamService._fresh_user(user)
        team = TeamService._live_team(user)
        if team is None:
            raise NotFound("Team not found")
        return team

    @staticmethod
    def get_teammates(user):
        user = TeamService._fresh_user(user)
        team = TeamService._live_team(user)
        if team is None:
            raise NotFound("You're not on a team.")
        teammates = User.objects.filter(team=team.pk, participant_id__in=team.members)
        order = {pid: i for i, pid in enumerate(team.members)}
        return sorted(teammates, key=lambda u: order[u.participant_id])

    @staticmethod
    def set_assigned_track(team_id, track):
        if not isinstance(track, str):
            raise InvalidInput("Track must be a string.")
        updated = Team.objects.filter(pk=team_id).update(
            assigned_track=track.strip()[:100], revision=F("revision") + 1
        )
        if not updated:
            raise NotFound("Team not found")
        logger.info("Team %s assigned to track %r", team_id, track)
        return Team.objects.get(pk=team_id)

    @staticmethod
    def list_teams():
        return Team.objects.order_by("-created_at")
