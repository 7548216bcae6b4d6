# cart_service/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cart_service.api.routers import carts, health
from cart_service.data.database import close_client, ensure_indexes, get_db
from cart_service.utils.settings import CORS_ORIGINS, PORT
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing cart store indexes")
    ensure_indexes(get_db())
    yield
    carts.close_shared_clients()
    close_client()


async def validation_error_handler(request: Request, exc: RequestValidationError):
    #malformed bodies are a caller error, reported as 400 like the domain validation
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def create_app(with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Cart Service",
        version="1.0.0",
        lifespan=lifespan if with_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(health.router)
    app.include_router(carts.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=PORT)
