"""HTTP surface of the onboarding service.

Authentication lives in front of this app; the authenticated user's id
arrives in the ``X-User-Id`` header.
"""

from typing import Iterable

from aiohttp import web
from loguru import logger
from pydantic import BaseModel, ValidationError

from site_crawler.api.schemas import (
    CrawlStatusOut,
    OnboardingStatusOut,
    PageOut,
    SubmitWebsiteIn,
    WebsiteOut,
)
from site_crawler.errors import NotFoundError
from site_crawler.monitoring.metrics import metrics_handler
from site_crawler.service import OnboardingService


SERVICE_KEY = web.AppKey("service", OnboardingService)
USER_HEADER = "X-User-Id"


def _json(model: BaseModel, status: int = 200) -> web.Response:
    return web.json_response(model.model_dump(mode="json"), status=status)


def _json_list(schema, items: Iterable) -> web.Response:
    return web.json_response([schema.model_validate(item).model_dump(mode="json") for item in items])


def _user_id(request: web.Request) -> str:
    user_id = request.headers.get(USER_HEADER, "").strip()
    if not user_id:
        raise web.HTTPUnauthorized(
            text='{"error": "missing user"}', content_type="application/json"
        )
    return user_id


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except NotFoundError as e:
        return web.json_response({"error": str(e)}, status=404)
    except ValidationError as e:
        details = e.errors(include_url=False, include_context=False, include_input=False)
        return web.json_response({"error": "invalid request", "details": details}, status=400)


routes = web.RouteTableDef()


@routes.post("/onboarding/websites")
async def submit_website(request: web.Request) -> web.Response:
    user_id = _user_id(request)
    try:
        payload = await request.json()
    except ValueError:
        return web.json_response({"error": "body must be JSON"}, status=400)

    body = SubmitWebsiteIn.model_validate(payload)
    website = await request.app[SERVICE_KEY].submit_seed(user_id, body.url)
    return _json(WebsiteOut.model_validate(website), status=201)


@routes.get("/onboarding/websites")
async def list_websites(request: web.Request) -> web.Response:
    websites = await request.app[SERVICE_KEY].list_websites(_user_id(request))
    return _json_list(WebsiteOut, websites)


@routes.post("/onboarding/websites/{website_id}/crawl")
async def start_crawl(request: web.Request) -> web.Response:
    website = await request.app[SERVICE_KEY].start_crawl(
        request.match_info["website_id"], _user_id(request)
    )
    return _json(WebsiteOut.model_validate(website), status=202)


@routes.get("/onboarding/websites/{website_id}/status")
async def crawl_status(request: web.Request) -> web.Response:
    status = await request.app[SERVICE_KEY].get_status(
        request.match_info["website_id"], _user_id(request)
    )
    return _json(CrawlStatusOut.model_validate(status))


@routes.get("/onboarding/websites/{website_id}/pages")
async def website_pages(request: web.Request) -> web.Response:
    pages = await request.app[SERVICE_KEY].list_pages(
        request.match_info["website_id"], _user_id(request)
    )
    return _json_list(PageOut, pages)


@routes.get("/onboarding/status")
async def onboarding_status(request: web.Request) -> web.Response:
    status = await request.app[SERVICE_KEY].onboarding_status(_user_id(request))
    return _json(OnboardingStatusOut.model_validate(status))


@routes.get("/onboarding/pages")
async def user_pages(request: web.Request) -> web.Response:
    pages = await request.app[SERVICE_KEY].list_user_pages(_user_id(request))
    return _json_list(PageOut, pages)


@routes.get("/onboarding/pages/{page_id}")
async def get_page(request: web.Request) -> web.Response:
    page = await request.app[SERVICE_KEY].get_page(request.match_info["page_id"], _user_id(request))
    return _json(PageOut.model_validate(page))


@routes.post("/onboarding/pages/{page_id}/refetch")
async def refetch_page(request: web.Request) -> web.Response:
    page = await request.app[SERVICE_KEY].refetch_page(
        request.match_info["page_id"], _user_id(request)
    )
    return _json(PageOut.model_validate(page))


@routes.delete("/onboarding/pages/{page_id}")
async def delete_page(request: web.Request) -> web.Response:
    page = await request.app[SERVICE_KEY].soft_delete_page(
        request.match_info["page_id"], _user_id(request)
    )
    return _json(PageOut.model_validate(page))


def create_app(service: OnboardingService) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[SERVICE_KEY] = service
    app.add_routes(routes)
    app.router.add_get("/metrics", metrics_handler)
    logger.debug("API routes registered")
    return app
