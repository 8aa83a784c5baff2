import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

import config
import database
from auth import router as auth_router
from bootcamps import router as bootcamps_router
from courses import router as courses_router
from errors import register_error_handlers
from reviews import router as reviews_router
from users import router as users_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("devcamper")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is None:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; database routes will fail")
    else:
        try:
            database.client.admin.command("ping")
            database.ensure_indexes(database.db)
        except Exception:
            # Refuse to serve without a working database
            logger.exception("Could not connect to MongoDB")
            raise
        logger.info("MongoDB connected: %s", database.db.name)
    logger.info("Server running in %s mode on port %s", config.ENVIRONMENT, config.PORT)
    yield
    if database.client is not None:
        database.client.close()


# App and CORS
app = FastAPI(title="DevCamper API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_error_handlers(app)

# Rate limit: one window per client IP shared by every route
app.state.limiter = Limiter(
    key_func=get_remote_address,
    application_limits=[config.RATE_LIMIT],
    enabled=config.RATE_LIMIT_ENABLED,
)
app.add_middleware(SlowAPIMiddleware)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
}


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    if config.ENVIRONMENT == "production":
        response.headers.setdefault("Strict-Transport-Security", "max-age=15552000; includeSubDomains")
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    client = request.client.host if request.client else "-"
    logger.info("%s %s %s -> %s", request.method, request.url, client, response.status_code)
    return response


app.include_router(auth_router)
app.include_router(bootcamps_router)
app.include_router(courses_router)
app.include_router(reviews_router)
app.include_router(users_router)


@app.get("/")
def root():
    return {"message": "DevCamper API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": None,
        "collections": [],
    }
    if database.db is None:
        return response
    try:
        response["database_name"] = database.db.name
        response["collections"] = database.db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
    except Exception as e:
        response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    return response


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", config.PORT))
    uvicorn.run(app, host="0.0.0.0", port=port)
