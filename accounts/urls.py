from django.urls import path
from . import views

app_name = "accounts"

urlpatterns = [
    path("api/sign-up/", views.sign_up, name="sign_up"),
    path("api/sign-in/", views.sign_in, name="sign_in"),
    path("api/sign-out/", views.sign_out, name="sign_out"),
    path("api/password-reset/", views.request_password_reset, name="request_password_reset"),
    path("reset/<uidb64>/<token>/", views.password_reset_confirm, name="password_reset_confirm"),
    path("api/password/", views.set_new_password, name="set_new_password"),
    path("api/me/", views.current_user, name="current_user"),
]
