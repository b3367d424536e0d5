# teams/views.py - Team formation API

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser

from core.exceptions import InvalidInput
from core.stats import StatsCache
from users.serializers import TeammateSerializer, UserSerializer
from .matchmaking import MatchmakingService
from .serializers import (
    AdminTeamSerializer,
    AssignTrackSerializer,
    JoinTeamSerializer,
    KickSerializer,
    LockTeamSerializer,
    MatchmakingProfileSerializer,
    PrioritiesSerializer,
    TeamSerializer,
)
from .services import TeamService

ADMIN_ACTIONS = ("list", "assign_track", "stats")


class TeamViewSet(viewsets.GenericViewSet):
    """
    Team formation for participants, plus a read-only admin view.

    The team id doubles as the join code the leader shares with teammates.
    """
    serializer_class = TeamSerializer
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def get_permissions(self):
        if self.action in ADMIN_ACTIONS:
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def _team_response(self, team, status_code=status.HTTP_200_OK):
        if team is None:
            return Response({"team": None}, status=status_code)
        return Response(TeamSerializer(team).data, status=status_code)

    @action(detail=False, methods=['post'], url_path='create')
    def create_team(self, request):
        """
        POST /api/teams/create/
        """
        team = TeamService.create_team(request.user)
        return self._team_response(team, status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def join(self, request):
        """
        POST /api/teams/join/
        Body: {"code": "<team uuid>"}
        """
        serializer = JoinTeamSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        team = TeamService.join_team(request.user, serializer.validated_data["code"])
        return self._team_response(team)

    @action(detail=False, methods=['post'])
    def leave(self, request):
        user = TeamService.leave_team(request.user)
        return Response(UserSerializer(user).data)

    @action(detail=False, methods=['post'])
    def lock(self, request):
        """
        POST /api/teams/lock/
        Body: {"track_interests": ["...", ...]}
        """
        serializer = LockTeamSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        team = TeamService.lock_team(request.user, serializer.validated_data["track_interests"])
        return self._team_response(team)

    @action(detail=False, methods=['put'])
    def priorities(self, request):
        serializer = PrioritiesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        team = TeamService.update_team_priorities(request.user, serializer.validated_data)
        return self._team_response(team)

    @action(detail=False, methods=['post'])
    def kick(self, request):
        """
        POST /api/teams/kick/
        Body: {"participant_id": "..."}
        """
        serializer = KickSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        team = TeamService.kick_from_team(request.user, serializer.validated_data["participant_id"])
        return self._team_response(team)

    @action(detail=False, methods=['get'])
    def mine(self, request):
        team = TeamService.get_team_info(request.user)
        teammates = TeamService.get_teammates(request.user)
        return Response(TeamSerializer(team, context={"teammates": teammates}).data)

    @action(detail=False, methods=['get'])
    def teammates(self, request):
        teammates = TeamService.get_teammates(request.user)
        return Response(TeammateSerializer(teammates, many=True).data)

    @action(detail=False, methods=['post'], url_path='gavel-token')
    def gavel_token(self, request):
        return Response({"token": TeamService.get_gavel_token(request.user)})

    # Admin

    def list(self, request):
        teams = TeamService.list_teams()
        track = request.query_params.get("assigned_track")
        if track is not None:
            teams = teams.filter(assigned_track=track)
        locked = request.query_params.get("team_locked")
        if locked in ("true", "false"):
            teams = teams.filter(team_locked=(locked == "true"))
        return Response(AdminTeamSerializer(teams, many=True).data)

    @action(detail=True, methods=['post'], url_path='assign-track')
    def assign_track(self, request, pk=None):
        serializer = AssignTrackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        team = TeamService.set_assigned_track(pk, serializer.validated_data["track"])
        return Response(AdminTeamSerializer(team).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(StatsCache().get_team_stats())


class MatchmakingViewSet(viewsets.GenericViewSet):
    """
    GET  /api/teams/matchmaking/?type=individuals|teams&text=&page=0&size=20
    PUT  /api/teams/matchmaking/profile/
    POST /api/teams/matchmaking/exit/
    GET  /api/teams/matchmaking/team-in-search/
    """
    permission_classes = [IsAuthenticated]
    serializer_class = MatchmakingProfileSerializer

    def list(self, request):
        params = request.query_params
        try:
            page = int(params.get("page", 0))
            size = int(params.get("size", 20))
        except (TypeError, ValueError):
            raise InvalidInput("'page' and 'size' must be integers.")
        result = MatchmakingService.search(params.get("type", ""), params.get("text", ""), page, size)
        return Response(result)

    @action(detail=False, methods=['put'])
    def profile(self, request):
        serializer = MatchmakingProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = MatchmakingService.update_matchmaking_profile(
            request.user,
            serializer.validated_data["enrollment_type"],
            serializer.validated_data["profile"],
        )
        return Response(UserSerializer(user).data)

    @action(detail=False, methods=['post'])
    def exit(self, request):
        user = MatchmakingService.exit_search(request.user)
        return Response(UserSerializer(user).data)

    @action(detail=False, methods=['get'], url_path='team-in-search')
    def team_in_search(self, request):
        return Response({"in_search": MatchmakingService.team_in_search(request.user)})
