import logging
import time

from django.conf import settings
from django.db import connections
from django.db.utils import OperationalError
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import RegistrationSettings
from .serializers import RegistrationSettingsSerializer

logger = logging.getLogger("hackreg")


class SettingsView(APIView):
    """
    GET   /api/core/settings/   public registration windows and texts
    PATCH /api/core/settings/   admins only
    """

    def get_permissions(self):
        if self.request.method == "GET":
            return [AllowAny()]
        return [IsAdminUser()]

    def get(self, request):
        return Response(RegistrationSettingsSerializer(RegistrationSettings.load()).data)

    def patch(self, request):
        serializer = RegistrationSettingsSerializer(
            RegistrationSettings.load(), data=request.data, partial=True
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info("Registration settings updated by %s: %s", request.user.email, sorted(request.data.keys()))
        return Response(serializer.data)


class HealthCheckView(APIView):
    """
    Lightweight health endpoint for uptime checks.
    - Checks DB connectivity
    - Returns env and simple latency
    """
    permission_classes = [AllowAny]
    authentication_classes = []  # public endpoint

    def get(self, request, *args, **kwargs):
        start = time.time()

        db_ok = True
        try:
            connections["default"].cursor()
        except OperationalError:
            db_ok = False

        duration_ms = int((time.time() - start) * 1000)

        return Response(
            {
                "status": "ok" if db_ok else "degraded",
                "db": db_ok,
                "env": getattr(settings, "ENV", "unknown"),
                "latency_ms": duration_ms,
            }
        )
