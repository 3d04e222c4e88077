import asyncio
import logging
from contextlib import asynccontextmanager, suppress

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core import config
from core.db import Database
from core.log import configure_logging
from users import repository as users_repository
from users import router as users_router

logger = logging.getLogger(__name__)

ENDPOINTS = {
    "GET /users": "List users",
    "GET /users/{id}": "Get a user by id",
    "POST /users": "Create a user",
    "PUT /users/{id}": "Update a user",
    "DELETE /users/{id}": "Delete a user",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    database = getattr(app.state, "database", None)
    if database is None:
        database = Database.from_env(bootstrap=users_repository.SCHEMA_STATEMENTS)
        app.state.database = database

    # Connect in the background: the server starts accepting requests right
    # away and answers 503 until the database is reachable.
    connect_task = None
    if not database.is_ready:
        connect_task = asyncio.create_task(
            database.connect_with_retry(retry_delay_s=config.connect_retry_s()),
            name="db-connect",
        )
    try:
        yield
    finally:
        if connect_task is not None and not connect_task.done():
            connect_task.cancel()
            with suppress(asyncio.CancelledError):
                await connect_task
        await database.close()


async def validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {"message": "Invalid request.", "errors": jsonable_encoder(exc.errors())}},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error method=%s path=%s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error."},
    )


def create_app(database: Database | None = None) -> FastAPI:
    """
    Build the application.

    Pass `database` to inject a handle (tests, embedding); otherwise one is
    built from the environment when the lifespan starts.
    """
    app = FastAPI(title="Users API", lifespan=lifespan)
    if database is not None:
        app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(users_router.router, tags=["users"])

    @app.get("/health")
    def health() -> dict:
        database = getattr(app.state, "database", None)
        ready = database is not None and database.is_ready
        return {"status": "ok", "database": "ready" if ready else "connecting"}

    @app.get("/")
    def root() -> dict:
        return {"message": "users api", "endpoints": ENDPOINTS}

    # Registered last so that any path or method no route accepts ends here.
    @app.api_route(
        "/{path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
        include_in_schema=False,
    )
    def endpoint_not_found(path: str) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Endpoint not found."})

    return app


app = create_app()


def run() -> None:
    configure_logging()
    logger.info("server_starting host=%s port=%s", config.host(), config.port())
    # log_config=None keeps uvicorn on the root handler installed above.
    uvicorn.run(app, host=config.host(), port=config.port(), log_config=None)


if __name__ == "__main__":
    run()
