from logging.config import dictConfig

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from .config.config import Config
from .config.log_config import LogConfig
from .exception.application_error import ApplicationError

dictConfig(LogConfig().model_dump())

app = FastAPI(title="Vendor Earnings Console API", docs_url="/swagger")


@app.exception_handler(ApplicationError)
async def application_error_handler(request: Request, ae: ApplicationError):
    return JSONResponse(
        status_code=ae.status_code,
        content={"status": "error", "detail": ae.to_dict()},
    )


origins = Config.FRONTEND_URL.split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS", "DELETE"],
    allow_headers=["*"],
)


def create_app() -> FastAPI:
    """Construct the core application."""

    from .api import earnings, withdrawal

    routers = [
        earnings,
        withdrawal,
    ]

    for router in routers:
        app.include_router(router.router)

    return app
