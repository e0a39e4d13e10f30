"""Shared enumerations and choices used across apps."""

from django.db import models


class ActiveInactive(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class DraftPublished(models.TextChoices):
    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"


class MovementDirection(models.TextChoices):
    """Whether a ledger movement added or removed stock."""

    IN = "IN", "In"
    OUT = "OUT", "Out"


class ReferenceType(models.TextChoices):
    """Business reason recorded on a ledger movement."""

    PURCHASE = "Purchase", "Purchase"
    SALE = "Sale", "Sale"
