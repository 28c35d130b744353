import logging

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from cvrag.api.v1.documents import router as documents_router
from cvrag.api.v1.drafts import router as drafts_router
from cvrag.api.v1.health import router as health_router
from cvrag.api.v1.profiles import router as profiles_router
from cvrag.core.config import settings
from cvrag.core.cors import cors_allowed_origins
from cvrag.core.lifespan import lifespan
from cvrag.core.rate_limit import limiter

logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="CV Profile Merge API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(profiles_router, prefix="/v1", tags=["Profiles"])
app.include_router(documents_router, prefix="/v1", tags=["Documents"])
app.include_router(drafts_router, prefix="/v1", tags=["Drafts"])
