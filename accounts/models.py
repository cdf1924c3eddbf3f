from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils.translation import gettext_lazy as _

ROLE_ADMIN = 'Admin'
ROLE_COMPANY = 'Company'
ROLE_ENTREPRENEUR = 'Entrepreneur'

DEFAULT_ROLES = [ROLE_ADMIN, ROLE_COMPANY, ROLE_ENTREPRENEUR]


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        """Create and save a user with the given email and password."""
        if not email:
            raise ValueError('The Email field must be set')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def get_by_email_case_insensitive(self, email):
        """Get user by email using case-insensitive lookup."""
        try:
            return self.get(email__iexact=email)
        except self.model.DoesNotExist:
            return None

    def create_superuser(self, email, password=None, **extra_fields):
        """Create and save a superuser with the given email and password."""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Marketplace account. Email is the login; the role comes from group membership."""
    email = models.EmailField(_('email address'), unique=True)
    username = None

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    def __str__(self):
        return self.email

    @property
    def is_app_admin(self):
        """Platform administrator (Admin group, staff or superuser)."""
        return (
            self.is_staff
            or self.is_superuser
            or self.groups.filter(name=ROLE_ADMIN).exists()
        )

    @property
    def is_company(self):
        return self.groups.filter(name=ROLE_COMPANY).exists()

    @property
    def is_entrepreneur(self):
        return self.groups.filter(name=ROLE_ENTREPRENEUR).exists()

    def get_role_names(self):
        """Get a list of role names for the user."""
        return [group.name for group in self.groups.all()]
