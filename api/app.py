"""Приложение FastAPI"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from aiogram import Bot
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from api.handlers import listings, bids, reports
from database.connection import engine as default_engine, build_session_maker
from database.schema import init_models, check_schema_version
from services.errors import AuctionError
from services.notifications import create_bot

logger = logging.getLogger(__name__)


def create_app(
    engine: Optional[AsyncEngine] = None,
    bot: Optional[Bot] = None,
) -> FastAPI:
    """Собрать приложение. engine и bot подменяются в тестах"""
    engine = engine or default_engine

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_models(app.state.engine)
        # Несовпадение версии схемы - ошибка запуска, а не проверки в запросах
        version = await check_schema_version(app.state.engine)
        logger.info(f"API запущен, версия схемы {version}")
        yield
        if app.state.bot is not None:
            await app.state.bot.session.close()
        logger.info("API остановлен")

    app = FastAPI(title="Auction API", lifespan=lifespan)
    app.state.engine = engine
    app.state.session_maker = build_session_maker(engine)
    app.state.bot = bot if bot is not None else create_bot()

    @app.exception_handler(AuctionError)
    async def auction_error_handler(request: Request, exc: AuctionError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "code": "validation_error",
                "message": "Некорректный запрос",
                "errors": [
                    {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
                    for error in exc.errors()
                ],
            },
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(listings.router)
    app.include_router(bids.router)
    app.include_router(reports.router)
    return app
