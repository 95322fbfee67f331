from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth import router as auth_router
from content import router as content_router
from core import db, settings
from core.logging_config import configure_logging
from importer import router as importer_router
from importer.scheduler import scheduler
from properties import router as properties_router
from uploads import router as uploads_router

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    # Initialize the DB pool once per process.
    await db.init_pool()
    if settings.env_bool("IMPORT_AUTO_REFRESH", True):
        scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()
        await db.close_pool()


app = FastAPI(title="Property back office API", lifespan=lifespan)

# The marketing site and the admin UI are served from other origins.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins(),
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(auth_router.router, prefix=API_PREFIX, tags=["auth"])
app.include_router(importer_router.router, prefix=API_PREFIX, tags=["import"])
app.include_router(properties_router.router, prefix=API_PREFIX, tags=["properties"])
app.include_router(content_router.router, prefix=API_PREFIX)
app.include_router(uploads_router.router, prefix=API_PREFIX, tags=["uploads"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "property back office api"}
