from enum import Enum

from tortoise import fields, models

from site_crawler.utils.url_utils import MAX_URL_LENGTH


TITLE_MAX_LENGTH = 512


class PageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Page(models.Model):
    """
    صفحه‌ی داخلی کشف‌شده از یک وب‌سایت.
    """
    id = fields.UUIDField(pk=True)

    website = fields.ForeignKeyField(
        "models.Website",
        related_name="pages",
        on_delete=fields.CASCADE,
    )

    url = fields.CharField(max_length=MAX_URL_LENGTH)
    path = fields.CharField(max_length=MAX_URL_LENGTH)

    title = fields.CharField(max_length=TITLE_MAX_LENGTH, null=True)
    description = fields.TextField(null=True)
    scraped_content = fields.TextField(null=True)
    scraped_meta = fields.JSONField(null=True)
    word_count = fields.IntField(null=True)

    status = fields.CharEnumField(PageStatus, default=PageStatus.PENDING, index=True)
    error = fields.TextField(null=True)
    scraped_at = fields.DatetimeField(null=True)

    # فاصله از صفحه‌ی اصلی (لینک مستقیم = 1)
    depth = fields.IntField(default=1)

    deleted_at = fields.DatetimeField(null=True)
    deleted_by = fields.CharField(max_length=64, null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "website_pages"
        unique_together = (("website", "url"),)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __str__(self):
        return f"{self.url} [{self.status}]"
