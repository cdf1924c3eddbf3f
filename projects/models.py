from django.conf import settings
from django.db import models
from django.db.models import Exists, OuterRef
from django.urls import reverse


class ProjectQuerySet(models.QuerySet):
    def with_nda_activity(self):
        """Projects with at least one NDA agreement, whatever its status."""
        from nda.models import NdaAgreement
        return self.filter(Exists(NdaAgreement.objects.filter(project=OuterRef("pk"))))

    def annotate_nda_activity(self):
        from nda.models import NdaAgreement
        return self.annotate(has_nda_activity=Exists(NdaAgreement.objects.filter(project=OuterRef("pk"))))


class Project(models.Model):
    """
    A software project posted by an entrepreneur.

    ``summary`` is the teaser everyone may see; ``description`` is the full
    brief, shown only through the disclosure gate when ``requires_nda`` is set.
    NDA agreements hang off the project (one per initiating company), so the
    project itself keeps no pointer to a single agreement.
    """

    class Status(models.TextChoices):
        OPEN = "open", "Open"
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="projects")
    title = models.CharField(max_length=200)
    summary = models.TextField(help_text="Teaser shown to every visitor")
    description = models.TextField(help_text="Full brief, gated by NDA when required")
    budget = models.CharField(max_length=100, blank=True)
    skills = models.CharField(max_length=255, blank=True)
    requires_nda = models.BooleanField(default=False, db_index=True)
    status = models.CharField(max_length=32, choices=Status.choices, default=Status.OPEN, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProjectQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.title

    def get_absolute_url(self):
        return reverse("projects:project_detail", kwargs={"pk": self.pk})

    def teaser(self):
        return {
            "id": self.pk,
            "title": self.title,
            "summary": self.summary,
            "budget": self.budget,
            "skills": self.skills,
            "requires_nda": self.requires_nda,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def full_detail(self):
        data = self.teaser()
        data["description"] = self.description
        data["owner_id"] = self.owner_id
        return data
