"""
Stockflow Django adapter URL routing.
"""

from django.urls import path

from adapters.django_api import views


urlpatterns = [
    path("stock-movements/batches", views.batches_view),
    path("stock-movements/supplies", views.supplies_view),
    path(
        "stock-movements/<str:movement_type>/validate",
        views.movement_validate_view,
    ),
    path("stock-movements/<str:movement_type>", views.movement_create_view),
]
