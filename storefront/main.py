import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.config import settings
from storefront.database import create_tables, engine
from storefront.domain.exceptions import DomainException, IdentityServiceError
from storefront.presentation import admin_api, api, cart_api, reviews_api

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    await create_tables()
    logger.info("Таблицы созданы")

    yield

    logger.info("Приложение останавливается...")
    await engine.dispose()


def _error(status_code: int, message: str, errors=None) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]),
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        return _error(400, "Некорректные данные", errors)

    @app.exception_handler(IdentityServiceError)
    async def identity_exception_handler(request: Request, exc: IdentityServiceError):
        logger.error(f"Identity service недоступен: {exc}")
        return _error(503, "Сервис авторизации недоступен")

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException):
        return _error(400, str(exc))


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Order Service",
        description="Корзина, заказы, склад и рейтинги товаров",
        version="1.0.0",
        lifespan=lifespan
    )
    register_exception_handlers(app)

    app.include_router(api.router, prefix="/api")
    app.include_router(cart_api.router, prefix="/api")
    app.include_router(reviews_api.router, prefix="/api")
    app.include_router(admin_api.router, prefix="/api")

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


app = create_app()
