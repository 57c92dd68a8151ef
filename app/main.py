from fastapi import FastAPI

from app.config import get_settings
from app.infra.logging_config import LoggingConfig
from app.routers import webhooks


def create_app(testing: bool = False) -> FastAPI:
    settings = get_settings()
    if not testing:
        LoggingConfig(settings.log_level)
    app = FastAPI(title=settings.app_name)
    app.include_router(webhooks.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
