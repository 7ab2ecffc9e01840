from django.urls import path
from .pages import AuthPageView, SignOutPageView

urlpatterns = [
    path('auth/', AuthPageView.as_view(), name='auth'),
    path('logout/', SignOutPageView.as_view(), name='logout'),
]
