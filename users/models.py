"""User model for back-office staff and the actors recorded on stock movements.

This module defines the custom `User` model which extends Django's
`AbstractUser` with a unique, normalized email so staff can sign in
with either their username or email.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Custom user with a unique email.

    Fields:
    - email: the primary email, unique at the database level (normalized).
    - is_staff (inherited): grants access to inventory and catalog write endpoints.
    """

    email = models.EmailField(unique=True)

    def save(self, *args, **kwargs):
        """Normalize the email and persist.

        Stores `email` in lowercase without surrounding whitespace so
        uniqueness checks and sign-in lookups are reliable.
        """
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)
