"""
Root URL Configuration

- /admin/: Django admin (jazzmin skin)
- /api/assessment/: exam submission, evaluation and publication API

Author: Assessment Development Team
Version: 1.0.0
"""

from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/assessment/", include("assessment.urls")),
]
