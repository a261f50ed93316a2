from fastapi import APIRouter
from abm_api.api.v1.endpoints import pages, api_keys, capture, public_pages, webhooks, audit

api_router = APIRouter()

api_router.include_router(pages.router, prefix="/pages", tags=["pages"])
api_router.include_router(api_keys.router, prefix="/api-keys", tags=["api-keys"])
api_router.include_router(capture.router, tags=["leads"])
api_router.include_router(public_pages.router, prefix="/public/pages", tags=["public"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
api_router.include_router(audit.router, prefix="/audit-logs", tags=["audit"])
