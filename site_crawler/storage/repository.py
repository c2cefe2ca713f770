from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from tortoise.transactions import in_transaction

from site_crawler.storage.models import Page, PageStatus, Website


class WebsiteRepository:
    """Persistence for websites and their discovered pages."""

    # --------------------------
    #  Websites
    # --------------------------
    async def create_website(self, **fields: Any) -> Website:
        return await Website.create(**fields)

    async def update_website(self, website_id, **fields: Any) -> Optional[Website]:
        if fields:
            fields["updated_at"] = datetime.now(timezone.utc)
            await Website.filter(id=website_id).update(**fields)
        return await Website.get_or_none(id=website_id)

    async def find_website(self, website_id, user_id: Optional[str] = None) -> Optional[Website]:
        query = Website.filter(id=website_id)
        if user_id is not None:
            query = query.filter(user_id=user_id)
        return await query.first()

    async def find_websites_by_user(self, user_id: str) -> List[Website]:
        return await Website.filter(user_id=user_id).order_by("-created_at")

    async def find_primary_by_user(self, user_id: str) -> Optional[Website]:
        return await Website.filter(user_id=user_id, is_primary=True).first()

    # --------------------------
    #  Pages
    # --------------------------
    async def create_page(self, **fields: Any) -> Page:
        return await Page.create(**fields)

    async def create_pages(self, website_id, entries: Iterable[Dict[str, Any]]) -> List[Page]:
        """Create page rows for URLs this website does not have yet.

        ``entries`` carry ``url``, ``path`` and ``depth``. URLs already stored
        for the website (in any status) are skipped, so rediscovery never
        produces a second row.
        """
        entries = list(entries)
        if not entries:
            return []

        async with in_transaction() as conn:
            existing = set(
                await Page.filter(website_id=website_id)
                .using_db(conn)
                .values_list("url", flat=True)
            )

            pages: List[Page] = []
            for entry in entries:
                if entry["url"] in existing:
                    continue
                existing.add(entry["url"])
                pages.append(
                    Page(
                        website_id=website_id,
                        status=PageStatus.PENDING,
                        **entry,
                    )
                )

            if pages:
                await Page.bulk_create(pages, ignore_conflicts=True, using_db=conn)

        logger.debug(f"[Repository] Created {len(pages)} page rows for website {website_id}")
        return pages

    async def update_page(self, page_id, **fields: Any) -> Optional[Page]:
        if fields:
            fields["updated_at"] = datetime.now(timezone.utc)
            await Page.filter(id=page_id).update(**fields)
        return await Page.get_or_none(id=page_id)

    async def find_pages_by_website(self, website_id, *, include_deleted: bool = False) -> List[Page]:
        query = Page.filter(website_id=website_id)
        if not include_deleted:
            query = query.filter(deleted_at__isnull=True)
        return await query.order_by("depth", "created_at")

    async def find_active_pages_by_user(self, user_id: str) -> List[Page]:
        return await Page.filter(
            website__user_id=user_id,
            deleted_at__isnull=True,
        ).order_by("-created_at")

    async def find_page_by_id(self, page_id) -> Optional[Page]:
        return await Page.get_or_none(id=page_id).prefetch_related("website")

    async def find_page_by_url(self, website_id, url: str) -> Optional[Page]:
        return await Page.filter(website_id=website_id, url=url).first()

    async def count_page_statuses(self, website_id) -> Dict[str, int]:
        statuses = await Page.filter(
            website_id=website_id,
            deleted_at__isnull=True,
        ).values_list("status", flat=True)

        return {
            "total": len(statuses),
            "completed": sum(1 for s in statuses if s == PageStatus.COMPLETED),
            "pending": sum(
                1 for s in statuses if s in (PageStatus.PENDING, PageStatus.PROCESSING)
            ),
            "failed": sum(1 for s in statuses if s == PageStatus.FAILED),
        }

    async def count_pages(self, website_id) -> int:
        return await Page.filter(website_id=website_id).count()

    async def count_completed_pages(self, website_id) -> int:
        return await Page.filter(website_id=website_id, status=PageStatus.COMPLETED).count()

    async def soft_delete_page(self, page_id, deleted_by: str) -> Optional[Page]:
        return await self.update_page(
            page_id,
            deleted_at=datetime.now(timezone.utc),
            deleted_by=deleted_by,
        )
