from django.contrib import admin
from django.urls import path, include
from core.views import HealthCheckView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/auth/', include('authx.urls')),
    path('api/users/', include('users.urls')),
    path('api/teams/', include('teams.urls')),
    path('api/core/', include('core.urls')),
    path("api/health/", HealthCheckView.as_view(), name="health-check"),
]
