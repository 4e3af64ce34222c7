from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .ws import websocket_endpoint
from .sessions import SessionManager
from .logger import get_logger, get_current_log_file_path
from .config import DEBUG_API_SECRET, SOUNDS_ASSETS_PATH, SOUNDS_URL_PREFIX, WS_CLOSE_CODES

logger = get_logger("main")


def _check_debug_auth(request: Request) -> bool:
    """Verifica se o request tem autorização para acessar endpoints de debug.
    Se DEBUG_API_SECRET estiver vazio, permite acesso (dev mode)."""
    if not DEBUG_API_SECRET:
        return True
    return request.headers.get("X-Debug-Secret") == DEBUG_API_SECRET


def create_app(session_manager: Optional[SessionManager] = None) -> FastAPI:
    manager = session_manager or SessionManager()

    @asynccontextmanager
    async def lifespan(app):
        # Startup
        await manager.start_cleanup_task()
        logger.info("Session cleanup task started")

        yield

        # Shutdown
        await manager.stop_cleanup_task()
        logger.info("Session cleanup task stopped")

    app = FastAPI(lifespan=lifespan)
    app.state.session_manager = manager

    # Assets de áudio (o diretório pode não existir em dev)
    app.mount(SOUNDS_URL_PREFIX, StaticFiles(directory=str(SOUNDS_ASSETS_PATH), check_dir=False), name="sounds")

    @app.get("/health")
    def health_check():
        """Health check público"""
        return {
            "status": "ok",
            "sessions": manager.get_session_count(),
            "clients": manager.get_active_client_count(),
        }

    @app.get("/api/sounds")
    def list_sounds():
        """Catálogo de sons agrupado por categoria"""
        return manager.catalog.to_dict()

    @app.get("/api/sessions/status")
    def sessions_status(request: Request):
        """Retorna status das sessões ativas (útil para debug)"""
        if not _check_debug_auth(request):
            return JSONResponse(status_code=403, content={"error": "Forbidden"})

        sessions_info = []
        for public_id, session in manager.sessions.items():
            state = session.scheduler.state
            sessions_info.append({
                "session_id": public_id,
                "clients_count": len(session.websocket_clients),
                "last_activity": session.last_activity.isoformat(),
                "initialized": state.initialized,
                "loaded_buffers": len(state.loaded_buffers),
                "recent_sounds": sorted(state.recently_played_at),
            })

        return {
            "total_sessions": manager.get_session_count(),
            "total_clients": manager.get_active_client_count(),
            "log_file": get_current_log_file_path(),
            "sessions": sessions_info,
        }

    @app.websocket("/ws")
    async def websocket_route(websocket: WebSocket):
        try:
            await websocket_endpoint(websocket, manager)
        except Exception as e:
            logger.exception(f"WebSocket error: {e}")
            try:
                await websocket.close(code=WS_CLOSE_CODES["internal_error"], reason="Internal server error")
            except RuntimeError:
                logger.debug("WebSocket already closed")

    return app


app = create_app()


def run():
    uvicorn.run("context_sounds.main:app", host="0.0.0.0", port=8000)
