"""
issueflow API

FastAPI application wrapping one CommandEngine:
- User directory loading
- Single command application
- Ordered batch application
"""

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError
import structlog

from .. import __version__
from ..core.config import get_settings
from ..core.logging import configure_structlog
from ..engine import CommandEngine

logger = structlog.get_logger(__name__)


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class CommandRequest(BaseModel):
    command: str
    username: str
    timestamp: str
    params: Dict[str, Any] = Field(default_factory=dict)


class BatchRequest(BaseModel):
    commands: List[CommandRequest]


class BatchResponse(BaseModel):
    outputs: List[Dict[str, Any]]


# =============================================================================
# APP SETUP
# =============================================================================

def create_app(engine: Optional[CommandEngine] = None) -> FastAPI:
    settings = get_settings()
    configure_structlog(settings.log_level, settings.json_logs)

    app = FastAPI(
        title=settings.app_name,
        description="Command-driven issue tracking engine",
        version=__version__
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.engine = engine if engine is not None else CommandEngine(settings=settings)

    # =========================================================================
    # HEALTH CHECK
    # =========================================================================

    @app.get("/health")
    async def health_check(request: Request):
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": __version__,
            "halted": request.app.state.engine.halted
        }

    # =========================================================================
    # USERS
    # =========================================================================

    @app.post("/users", status_code=status.HTTP_201_CREATED)
    async def load_users(users: List[Dict[str, Any]], request: Request):
        """
        Load the user directory.

        Replaces any previously loaded users.
        """
        try:
            loaded = request.app.state.engine.registry.load_users(users)
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=exc.errors(include_url=False, include_context=False)
            )
        return {"loaded": len(loaded)}

    # =========================================================================
    # COMMANDS
    # =========================================================================

    @app.post("/commands")
    async def apply_command(body: CommandRequest, request: Request):
        """
        Apply one command.

        Returns the command's record, or 204 when it produces none.
        """
        record = request.app.state.engine.apply(
            body.command, body.username, body.timestamp, body.params
        )
        if record is None:
            return Response(status_code=status.HTTP_204_NO_CONTENT)
        return record

    @app.post("/commands/batch", response_model=BatchResponse)
    async def apply_batch(body: BatchRequest, request: Request):
        """Apply commands strictly in order and return every record produced."""
        outputs = request.app.state.engine.run(c.model_dump() for c in body.commands)
        logger.info("batch_applied", commands=len(body.commands), outputs=len(outputs))
        return BatchResponse(outputs=outputs)

    return app


app = create_app()


# =============================================================================
# RUN
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
