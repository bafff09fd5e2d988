import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from config import DATABASE_URL, LOG_LEVEL, PORT
from Database.db import create_db_engine, make_session_factory
from nice.nice_controllers import auth
from nice.nice_services.auth import NiceAuthService
from Routes import customers, health
from Services.exceptions import ProxyError

logger = logging.getLogger(__name__)


def _validation_detail(exc: RequestValidationError) -> list:
    # sem "input": inf/NaN não serializam em JSON
    return [
        {"loc": jsonable_encoder(err.get("loc")), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


def create_app(
    database_url: str = DATABASE_URL,
    engine: Optional[Engine] = None,
    auth_service: Optional[NiceAuthService] = None,
) -> FastAPI:
    """
    Monta a aplicação com o pool de conexões e o serviço de token
    criados uma única vez e guardados em app.state
    """
    app = FastAPI(
        title="NICE Proxy API",
        description="Proxy de token OAuth e base de clientes para o IVR do NICE",
        version="1.0.0"
    )

    app.state.engine = engine or create_db_engine(database_url)
    app.state.session_factory = make_session_factory(app.state.engine)
    app.state.auth_service = auth_service or NiceAuthService()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_body(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": "INVALID_INPUT", "detail": _validation_detail(exc)},
        )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(customers.router)

    return app


# uvicorn main:app
app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logger.info(f"Server running on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
