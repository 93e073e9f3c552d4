from django.urls import path

from .views import LoginView, LogoutView, VerifyTokenView

urlpatterns = [
    path("login/", LoginView.as_view(), name="auth-login"),
    path("verify/", VerifyTokenView.as_view(), name="auth-verify"),
    path("logout/", LogoutView.as_view(), name="auth-logout"),
]
