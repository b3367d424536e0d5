# users/urls.py

from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import (
    AdminUserViewSet,
    MeView,
    MyConfirmationView,
    MyDeclineView,
    MyProfileView,
    MyReimbursementView,
)

router = SimpleRouter()
router.register(r'', AdminUserViewSet, basename='user')

urlpatterns = [
    path('me/', MeView.as_view(), name='user-me'),
    path('me/profile/', MyProfileView.as_view(), name='user-me-profile'),
    path('me/confirmation/', MyConfirmationView.as_view(), name='user-me-confirmation'),
    path('me/decline/', MyDeclineView.as_view(), name='user-me-decline'),
    path('me/reimbursement/', MyReimbursementView.as_view(), name='user-me-reimbursement'),
    path('', include(router.urls)),
]
