"""
BurnDuel API и WebSocket.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .config import get_config
from .controller import GameController
from .ws_handlers import ws_loop
from .ws_manager import WSManager

config = get_config()

logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Отложенные уведомления не должны пережить приложение
    app.state.controller.timers.cancel_all()
    logger.info("Shutdown: pending room timers cancelled")


def create_app(controller: GameController | None = None) -> FastAPI:
    app = FastAPI(title="BurnDuel API", lifespan=lifespan)
    app.state.controller = controller or GameController(WSManager(config.send_timeout_sec), config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/games")
    def games():
        return {"games": app.state.controller.offers.snapshot()}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        logger.info("WS: connection attempt from %s", ws.client)
        await ws_loop(ws, app.state.controller)

    return app


app = create_app()
