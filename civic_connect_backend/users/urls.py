from django.urls import path
from .views import SignUpView, SignInView, SignOutView, CurrentUserView, ProfileRoleView

urlpatterns = [
    path('sign-up/', SignUpView.as_view(), name='api-sign-up'),
    path('sign-in/', SignInView.as_view(), name='api-sign-in'),
    path('sign-out/', SignOutView.as_view(), name='api-sign-out'),
    path('me/', CurrentUserView.as_view(), name='api-current-user'),
    path('profiles/<uuid:pk>/role/', ProfileRoleView.as_view(), name='api-profile-role'),
]
