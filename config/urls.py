"""URL configuration for the marketplace project.

Only the Django admin is exposed; operators confirm bookings and manage
trials through it.
"""
from django.contrib import admin  # type: ignore
from django.urls import path  # type: ignore

urlpatterns = [
    path('admin/', admin.site.urls),
]
