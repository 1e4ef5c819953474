"""
apps.sites.models
~~~~~~~~~~~~~~~~~
Site – the installation record; SiteAttribute – named values stored on it.
"""
from django.db import models
from django.utils.text import slugify


class Site(models.Model):
    """
    The single installation record that installation-wide settings hang off.

    Fields
    ------
    id
        Auto-incrementing integer; the installation normally uses ``1``
        (see ``settings.SITE_GUID``).
    name / url / email / description
        Direct attributes of the installation.  These are consulted first
        when a bare name is looked up on the persistent store.
    slug
        URL-safe version of ``name``, auto-generated on first save.
    created_at / updated_at
        Automatic timestamps.
    """

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, blank=True)
    url = models.URLField(max_length=255, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    #: Columns readable as bare-name attributes through the attribute store.
    DIRECT_ATTRIBUTES = ("name", "url", "email", "description")

    class Meta:
        ordering = ["id"]
        verbose_name = "Site"
        verbose_name_plural = "Sites"

    def save(self, *args, **kwargs) -> None:
        """Auto-populate ``slug`` on first save."""
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    def get_url(self) -> str:
        return self.url

    def __str__(self) -> str:
        return f"#{self.id} {self.name}" if self.id else self.name


class SiteAttribute(models.Model):
    """
    A named JSON value attached to a :class:`Site`.

    Configuration values are stored under ``"config:<name>"`` keys; other
    attributes share the same table, which is why the prefix exists.
    """

    site = models.ForeignKey(
        Site,
        on_delete=models.CASCADE,
        related_name="attributes",
    )
    name = models.CharField(
        max_length=300,
        help_text="Attribute key, e.g. 'config:dataroot'.",
    )
    value = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["site", "name"]
        unique_together = [("site", "name")]
        verbose_name = "Site Attribute"
        verbose_name_plural = "Site Attributes"

    def __str__(self) -> str:
        return f"{self.site_id}/{self.name}"
