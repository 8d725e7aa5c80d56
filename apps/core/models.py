from django.db import models


class BaseModel(models.Model):
    """
    Abstract base with creation and modification timestamps.

    ``auto_now`` only fires on ``save()``. Conditional ``QuerySet.update()``
    writes must pass ``updated_at`` themselves.
    """

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        get_latest_by = "created_at"
