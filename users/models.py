# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    ROLE_MEMBER = "member"
    ROLE_ADMIN = "admin"

    ROLE_CHOICES = (
        (ROLE_MEMBER, "Member"),
        (ROLE_ADMIN, "Admin"),
    )

    role = models.CharField(
        max_length=30,
        choices=ROLE_CHOICES,
        default=ROLE_MEMBER,
    )

    # Shown on the ranking and participant lists
    name = models.CharField(max_length=150, blank=True, default="")
    avatar = models.CharField(max_length=1024, blank=True, default="")

    @property
    def is_admin(self) -> bool:
        return self.is_superuser or self.role == self.ROLE_ADMIN

    @property
    def display_name(self) -> str:
        """
        Name used on public lists.
        Falls back to the local part of the email, then the username.
        """
        if self.name:
            return self.name
        if self.email:
            return self.email.split("@")[0]
        return self.username

    def __str__(self):
        return self.username
