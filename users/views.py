# users/views.py - Participant and admin review API

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from rest_framework.views import APIView

from core.stats import StatsCache
from .filters import UserQuery
from .serializers import (
    AdminUserSerializer,
    ConfirmationSerializer,
    EmailSerializer,
    MassActionSerializer,
    PasswordSerializer,
    ProfileSerializer,
    RatingSerializer,
    ReimbursementSerializer,
    TravelClassSerializer,
    UserSerializer,
)
from .services import AdmissionService


# ─────────────────────────────────────────────────────────────
# Participant
# ─────────────────────────────────────────────────────────────

class MeView(APIView):
    """
    GET /api/users/me/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = AdmissionService.get_user(request.user.pk)
        return Response(UserSerializer(user).data)


class MyProfileView(APIView):
    """
    PUT /api/users/me/profile/
    Body: {"profile": {...}}

    Submit (or edit) the application while registration is open.
    """
    permission_classes = [IsAuthenticated]

    def put(self, request):
        serializer = ProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = AdmissionService.submit_profile(request.user, serializer.validated_data["profile"])
        return Response(UserSerializer(user).data)

    post = put


class MyConfirmationView(APIView):
    """
    PUT /api/users/me/confirmation/
    Body: {"confirmation": {...}}
    """
    permission_classes = [IsAuthenticated]

    def put(self, request):
        serializer = ConfirmationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = AdmissionService.confirm(request.user, serializer.validated_data["confirmation"])
        return Response(UserSerializer(user).data)

    post = put


class MyDeclineView(APIView):
    """
    POST /api/users/me/decline/

    Gives up the spot. The user leaves their team first.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        user = AdmissionService.decline(request.user)
        return Response(UserSerializer(user).data)


class MyReimbursementView(APIView):
    """
    PUT /api/users/me/reimbursement/
    Body: {"reimbursement": {...}}
    """
    permission_classes = [IsAuthenticated]

    def put(self, request):
        serializer = ReimbursementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = AdmissionService.submit_reimbursement(request.user, serializer.validated_data["reimbursement"])
        return Response(UserSerializer(user).data)

    post = put


# ─────────────────────────────────────────────────────────────
# Admin
# ─────────────────────────────────────────────────────────────

class AdminUserViewSet(viewsets.GenericViewSet):
    """
    Application review for admins.

    GET  /api/users/?text=&admitted=true&sort_by=rating&sort_desc=true&page=0&size=50
    GET  /api/users/{id}/
    POST /api/users/{id}/{action}/
    POST /api/users/mass/{action}/
    GET  /api/users/stats/
    """
    permission_classes = [IsAdminUser]
    serializer_class = AdminUserSerializer

    def _target(self, pk):
        return AdmissionService.get_user(pk)

    def _respond(self, user):
        return Response(AdminUserSerializer(user).data)

    def list(self, request):
        query = UserQuery.from_params(request.query_params)
        page = AdmissionService.get_page(query)
        users = AdminUserSerializer(page["users"], many=True, context={"team_locked": page["team_locked"]}).data
        return Response({
            "users": users,
            "page": page["page"],
            "size": page["size"],
            "total_pages": page["total_pages"],
            "count": page["count"],
        })

    def retrieve(self, request, pk=None):
        return self._respond(self._target(pk))

    # Review transitions

    @action(detail=True, methods=['post'], url_path='soft-admit')
    def soft_admit(self, request, pk=None):
        return self._respond(AdmissionService.soft_admit(self._target(pk), request.user))

    @action(detail=True, methods=['post'], url_path='un-soft-admit')
    def un_soft_admit(self, request, pk=None):
        return self._respond(AdmissionService.un_soft_admit(self._target(pk), request.user))

    @action(detail=True, methods=['post'])
    def admit(self, request, pk=None):
        return self._respond(AdmissionService.admit(self._target(pk), request.user))

    @action(detail=True, methods=['post'], url_path='accept-terminal')
    def accept_terminal(self, request, pk=None):
        return self._respond(AdmissionService.accept_terminal(self._target(pk)))

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        return self._respond(AdmissionService.reject(self._target(pk)))

    @action(detail=True, methods=['post'])
    def unreject(self, request, pk=None):
        return self._respond(AdmissionService.unreject(self._target(pk)))

    @action(detail=True, methods=['post'], url_path='reject-email')
    def reject_email(self, request, pk=None):
        return self._respond(AdmissionService.send_reject_email(self._target(pk)))

    @action(detail=True, methods=['post'])
    def rate(self, request, pk=None):
        serializer = RatingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(AdmissionService.rate(self._target(pk), serializer.validated_data["rating"]))

    @action(detail=True, methods=['post'], url_path='travel-class')
    def travel_class(self, request, pk=None):
        serializer = TravelClassSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(AdmissionService.accept_travel_class(
            self._target(pk), serializer.validated_data.get("reimbursement_class", "")
        ))

    @action(detail=True, methods=['post'], url_path='check-in')
    def check_in(self, request, pk=None):
        return self._respond(AdmissionService.check_in(self._target(pk)))

    @action(detail=True, methods=['post'], url_path='check-out')
    def check_out(self, request, pk=None):
        return self._respond(AdmissionService.check_out(self._target(pk)))

    # Account administration

    @action(detail=True, methods=['post'], url_path='toggle-special')
    def toggle_special(self, request, pk=None):
        return self._respond(AdmissionService.toggle_special(self._target(pk)))

    @action(detail=True, methods=['put'])
    def profile(self, request, pk=None):
        serializer = ProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(AdmissionService.admin_update_profile(
            self._target(pk), serializer.validated_data["profile"]
        ))

    @action(detail=True, methods=['put'])
    def email(self, request, pk=None):
        serializer = EmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(AdmissionService.update_email(self._target(pk), serializer.validated_data["email"]))

    @action(detail=True, methods=['put'])
    def password(self, request, pk=None):
        serializer = PasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        AdmissionService.admin_change_password(self._target(pk), serializer.validated_data["password"])
        return Response({"message": "Password changed."})

    # Batch operations

    @action(detail=False, methods=['get'], url_path='mass/counts')
    def mass_counts(self, request):
        return Response({
            "rejection_count": AdmissionService.rejection_count(),
            "rejection_rest_count": AdmissionService.rejection_rest_count(),
            "later_rejection_count": AdmissionService.later_rejection_count(),
        })

    @action(detail=False, methods=['post'], url_path='mass/reject')
    def mass_reject(self, request):
        return Response({"count": AdmissionService.mass_reject()})

    @action(detail=False, methods=['post'], url_path='mass/reject-rest')
    def mass_reject_rest(self, request):
        return Response({"count": AdmissionService.mass_reject_rest()})

    @action(detail=False, methods=['post'], url_path='mass/waitlist')
    def mass_waitlist(self, request):
        return Response({"count": AdmissionService.set_on_waitlist()})

    @action(detail=False, methods=['post'], url_path='mass/confirm-by')
    def mass_confirm_by(self, request):
        serializer = MassActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        count = AdmissionService.update_confirm_by_for_all(serializer.validated_data["special"])
        return Response({"count": count})

    @action(detail=False, methods=['post'], url_path='mass/reject-emails')
    def mass_reject_emails(self, request):
        return Response({"sent": AdmissionService.send_reject_emails()})

    @action(detail=False, methods=['post'], url_path='mass/reject-emails-rest')
    def mass_reject_emails_rest(self, request):
        return Response({"sent": AdmissionService.send_reject_emails_rest()})

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(StatsCache().get_user_stats(), status=status.HTTP_200_OK)
