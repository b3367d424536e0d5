# teams/urls.py

from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import MatchmakingViewSet, TeamViewSet

router = SimpleRouter()
router.register(r'matchmaking', MatchmakingViewSet, basename='matchmaking')
router.register(r'', TeamViewSet, basename='team')

urlpatterns = [
    path('', include(router.urls)),
]
