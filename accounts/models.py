from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    """
    Account record. Its primary key is the canonical identity that enrollments
    and seat assignments point at; the human-readable student number lives on
    the linked StudentProfile.
    """

    class Role(models.TextChoices):
        STUDENT = "student", "Student"
        ADMIN = "admin", "Admin"

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STUDENT)
    phone = models.CharField(max_length=50, blank=True, null=True)

    @property
    def is_exam_admin(self) -> bool:
        return self.is_staff or self.role == self.Role.ADMIN

    def __str__(self):
        return self.email or self.username
