"""
Django settings for the marketplace project.

Values that differ between environments are read from the process
environment so the same module serves development, CI and production.
"""

import os
from pathlib import Path

from django.utils.translation import gettext_lazy as _

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_int(name, default=None):
    value = os.environ.get(name)
    if value in (None, ""):
        return default
    return int(value)


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-dev-key-change-me")
DEBUG = env_bool("DJANGO_DEBUG", True)
ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "accounts.apps.AccountsConfig",
    "companies",
    "projects",
    "notifications",
    "audit",
    "nda.apps.NdaConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.locale.LocaleMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": os.environ.get("DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.environ.get("DB_USER", ""),
        "PASSWORD": os.environ.get("DB_PASSWORD", ""),
        "HOST": os.environ.get("DB_HOST", ""),
        "PORT": os.environ.get("DB_PORT", ""),
    }
}

AUTH_USER_MODEL = "accounts.User"
LOGIN_URL = "/admin/login/"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
]

# Arabic first, English second
LANGUAGE_CODE = "ar"
LANGUAGES = [
    ("ar", _("Arabic")),
    ("en", _("English")),
]
LOCALE_PATHS = [BASE_DIR / "locale"]
TIME_ZONE = "Asia/Riyadh"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
MEDIA_URL = "/media/"
MEDIA_ROOT = os.environ.get("DJANGO_MEDIA_ROOT", str(BASE_DIR / "media"))

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

EMAIL_BACKEND = os.environ.get("EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend")
DEFAULT_FROM_EMAIL = os.environ.get("DEFAULT_FROM_EMAIL", "no-reply@linktech.app")
SITE_URL = os.environ.get("SITE_URL", "http://localhost:8000")

# Azure Communication Services (optional e-mail delivery for notifications)
AZURE_COMMUNICATION_CONNECTION_STRING = os.environ.get("AZURE_COMMUNICATION_CONNECTION_STRING")
AZURE_COMMUNICATION_SENDER_ADDRESS = os.environ.get("AZURE_COMMUNICATION_SENDER_ADDRESS")

# Sadiq e-signature provider
SADIQ_BASE_URL = os.environ.get("SADIQ_BASE_URL", "")
SADIQ_TOKEN_URL = os.environ.get("SADIQ_TOKEN_URL", "")
SADIQ_ACCOUNT_ID = os.environ.get("SADIQ_ACCOUNT_ID", "")
SADIQ_ACCOUNT_SECRET = os.environ.get("SADIQ_ACCOUNT_SECRET", "")
SADIQ_USERNAME = os.environ.get("SADIQ_USERNAME", "")
SADIQ_PASSWORD = os.environ.get("SADIQ_PASSWORD", "")
SADIQ_ACCESS_TOKEN = os.environ.get("SADIQ_ACCESS_TOKEN", "")
SADIQ_WEBHOOK_SECRET = os.environ.get("SADIQ_WEBHOOK_SECRET", "")
SADIQ_SIGNING_BASE_URL = os.environ.get("SADIQ_SIGNING_BASE_URL", "https://app.sadq-sa.com")
SADIQ_INVITATION_VALID_DAYS = env_int("SADIQ_INVITATION_VALID_DAYS", 30)
SADIQ_TIMEOUT = env_int("SADIQ_TIMEOUT", 20)

# NDA policy
NDA_VALIDITY_MONTHS = env_int("NDA_VALIDITY_MONTHS")
NDA_EMAIL_NOTIFICATIONS = env_bool("NDA_EMAIL_NOTIFICATIONS", False)
NDA_POLL_INTERVAL_SECONDS = env_int("NDA_POLL_INTERVAL_SECONDS", 30)
# An envelope request older than this is treated as abandoned and may be retried
NDA_ENVELOPE_CLAIM_SECONDS = env_int("NDA_ENVELOPE_CLAIM_SECONDS", 300)
# TTF font with Arabic glyphs for the agreement PDF, e.g. NotoNaskhArabic-Regular.ttf
NDA_PDF_FONT_PATH = os.environ.get("NDA_PDF_FONT_PATH", "")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "nda": {
            "handlers": ["console"],
            "level": os.environ.get("NDA_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        "notifications": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "companies": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
