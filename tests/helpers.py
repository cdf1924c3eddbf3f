from datetime import date

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group

from accounts.models import ROLE_ADMIN, ROLE_COMPANY, ROLE_ENTREPRENEUR
from companies.models import CompanyProfile
from projects.models import Project

User = get_user_model()

# Keeps rendered agreement PDFs out of MEDIA_ROOT
TEST_STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.InMemoryStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

ENTREPRENEUR_INFO = {
    "full_name": "Sara Al-Qahtani",
    "email": "sara@example.com",
    "phone": "0551234567",
    "national_id": "1098765432",
    "birth_date": "1990-04-12",
    "address": "King Fahd Road, Riyadh",
}


def make_user(email, role=None, password="pass", **extra):
    user = User.objects.create_user(email=email, password=password, **extra)
    if role:
        group, _ = Group.objects.get_or_create(name=role)
        user.groups.add(group)
    return user


def make_admin(email="admin@example.com"):
    return make_user(email, ROLE_ADMIN)


def make_entrepreneur(email="owner@example.com"):
    return make_user(email, ROLE_ENTREPRENEUR)


def make_company(email="company@example.com", verified=True, complete=True, **overrides):
    user = make_user(email, ROLE_COMPANY)
    fields = {
        "company_name": "Code Falcons",
        "phone": "+966512345678",
    }
    if complete:
        fields.update({
            "full_name": "Khalid Al-Harbi",
            "national_id": "1012345678",
            "birth_date": date(1985, 5, 1),
            "address": "Olaya Street, Riyadh",
            "commercial_registry": "1010101010",
        })
    fields.update(overrides)
    CompanyProfile.objects.create(user=user, verified=verified, **fields)
    return user


def make_project(owner, requires_nda=True, **overrides):
    fields = {
        "title": "Fleet tracking platform",
        "summary": "Real-time tracking for delivery fleets.",
        "description": "Full brief: architecture, integrations with carrier APIs and pricing model.",
        "budget": "150,000 SAR",
    }
    fields.update(overrides)
    return Project.objects.create(owner=owner, requires_nda=requires_nda, **fields)
