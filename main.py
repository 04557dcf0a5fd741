from contextlib import asynccontextmanager

from fastapi import FastAPI

from shortlink_app.api.errors import register_exception_handlers
from shortlink_app.api.v1 import links, redirect
from shortlink_app.config import settings
from shortlink_app.dependencies import get_dispatcher, get_record_store
from shortlink_app.logging_config import configure_logging


configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Creates tables on first use of the SQL store
    app.dependency_overrides.get(get_record_store, get_record_store)()
    yield
    # Let in-process analytics tasks finish before the loop goes away
    dispatcher = app.dependency_overrides.get(get_dispatcher, get_dispatcher)()
    await dispatcher.drain()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Short links with visit analytics",
    debug=settings.debug,
    lifespan=lifespan,
)

register_exception_handlers(app)


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(links.router, prefix="/api/v1")
# Catch-all /{short_code}, keep it last
app.include_router(redirect.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
