from django.urls import path
from . import views

app_name = "okrs"

urlpatterns = [
    path("api/", views.okr_list, name="okr_list"),
    path("api/create/", views.create_okr, name="create_okr"),
    path("api/extract/", views.extract_okr, name="extract_okr"),
    path("api/<uuid:okr_id>/", views.get_okr, name="get_okr"),
    path("api/<uuid:okr_id>/update/", views.update_okr, name="update_okr"),
    path("api/<uuid:okr_id>/delete/", views.delete_okr, name="delete_okr"),
]
