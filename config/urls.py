"""
URL configuration for the marketplace project.

The NDA endpoints live under /nda/, the project detail surface (which
consults the disclosure gate) under /projects/ and the company profile
write path under /companies/.
"""

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('nda/', include('nda.urls')),
    path('projects/', include('projects.urls')),
    path('companies/', include('companies.urls')),
    path('notifications/', include('notifications.urls')),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
