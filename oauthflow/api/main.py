from fastapi import FastAPI

from oauthflow.api.routes_oauth import create_oauth_router
from oauthflow.api.schemas import OAuthSessionData
from oauthflow.core.config import get_settings
from oauthflow.core.errors import register_error_handlers
from oauthflow.core.logger import init_logging
from oauthflow.services.oauth import OAuthClient, create_oauth_client


def create_app(client: OAuthClient[OAuthSessionData] | None = None) -> FastAPI:
    init_logging()
    settings = get_settings()

    is_production = settings.ENV.lower() == "prod"
    app = FastAPI(
        title=settings.APP_NAME,
        debug=False,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
    )
    if client is None:
        client = create_oauth_client(settings, payload_type=OAuthSessionData)

    register_error_handlers(app)
    app.include_router(create_oauth_router(client))
    return app
