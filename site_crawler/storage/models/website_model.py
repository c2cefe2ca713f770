from enum import Enum

from tortoise import fields, models

from site_crawler.utils.url_utils import MAX_URL_LENGTH


NAME_MAX_LENGTH = 512


class WebsiteStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Website(models.Model):
    """
    وب‌سایتی که کاربر برای ساختن پروفایلش ثبت کرده است.
    """
    id = fields.UUIDField(pk=True)
    user_id = fields.CharField(max_length=64, index=True)
    url = fields.CharField(max_length=MAX_URL_LENGTH)

    name = fields.CharField(max_length=NAME_MAX_LENGTH, null=True)
    description = fields.TextField(null=True)
    scraped_content = fields.TextField(null=True)
    scraped_meta = fields.JSONField(null=True)

    status = fields.CharEnumField(WebsiteStatus, default=WebsiteStatus.PENDING, index=True)
    error = fields.TextField(null=True)
    scraped_at = fields.DatetimeField(null=True)

    # اولین سایت هر کاربر اصلی است
    is_primary = fields.BooleanField(default=False)

    total_pages_found = fields.IntField(default=0)
    total_pages_scraped = fields.IntField(default=0)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "user_websites"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.url} [{self.status}]"
