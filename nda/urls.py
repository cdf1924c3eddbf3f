from django.urls import path
from . import views

app_name = "nda"

urlpatterns = [
    path("projects/<int:project_id>/contact/", views.contact_check, name="contact_check"),
    path("contact/", views.contact_update, name="contact_update"),
    path("projects/<int:project_id>/initiate/", views.initiate, name="initiate"),
    path("projects/<int:project_id>/agreements/", views.project_agreements, name="project_agreements"),
    path("agreements/<int:pk>/", views.agreement_detail, name="agreement_detail"),
    path("agreements/<int:pk>/complete/", views.agreement_complete, name="agreement_complete"),
    path("agreements/<int:pk>/refresh/", views.agreement_refresh, name="agreement_refresh"),
    path("agreements/<int:pk>/cancel/", views.agreement_cancel, name="agreement_cancel"),
    path("webhook", views.sadiq_webhook, name="webhook"),
]
