from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.recommendations.admin_routes import recommendations_admin_router
from src.api.recommendations.routes import recommendations_router
from src.config.settings import settings
from src.middleware.error import http_exception_handler
from src.middleware.rate_limit import limiter
from src.middleware.timing import add_process_time_header
from src.shared.utils import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="Recommendations API",
    description="Interaction tracking and content recommendations.",
    version="1.0.0",
)

app.include_router(recommendations_router)
app.include_router(recommendations_admin_router)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, http_exception_handler)
app.add_middleware(SlowAPIMiddleware)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Recommendations API",
        version="1.0.0",
        description="Interaction tracking and content recommendations.",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi


app.middleware("http")(add_process_time_header)


@app.get("/", tags=["App"])
async def read_root():
    return {"status": "ok", "environment": settings.ENVIRONMENT}
