"""FastAPI administrative surface for the alerting service."""
from contextlib import asynccontextmanager
from typing import Any, Literal, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from ..alerting.models import AlertCondition, AlertTrigger
from ..core.config import settings
from ..service import AlertingService, build_alerting

logger = structlog.get_logger(__name__)


# --- Request/Response Models ---

class ConditionModel(BaseModel):
    """A single trigger condition."""
    field: str = Field(..., min_length=1, max_length=200)
    operator: str
    value: Any = None
    previous: Optional[Any] = None


class TriggerModel(BaseModel):
    """Request/response model for a trigger."""
    id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    event_type: str = Field(..., min_length=1, max_length=100)
    conditions: list[ConditionModel] = Field(default_factory=list)
    priority: Literal["low", "normal", "high", "urgent"] = "normal"
    cooldown_minutes: int = Field(default=0, ge=0, le=10080)
    active: bool = True
    description: str = Field(default="", max_length=2000)

    def to_trigger(self) -> AlertTrigger:
        conditions = []
        for c in self.conditions:
            data = c.model_dump(exclude_unset=True)
            conditions.append(AlertCondition.from_dict(data))
        return AlertTrigger(
            id=self.id,
            name=self.name,
            event_type=self.event_type,
            conditions=conditions,
            priority=self.priority,
            cooldown_minutes=self.cooldown_minutes,
            active=self.active,
            description=self.description,
        )


def create_app(service: Optional[AlertingService] = None) -> FastAPI:
    """
    Build the admin API around an alerting service.

    The sweeper is started and stopped with the application lifespan.
    Responses carry counts and trigger definitions only, never subscriber data.
    """
    service = service or build_alerting(settings)
    limiter = Limiter(key_func=get_remote_address)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.start()
        logger.info("alerting_service_started")
        try:
            yield
        finally:
            await service.stop()
            logger.info("alerting_service_stopped")

    app = FastAPI(
        title="Election Alerts Admin API",
        description="Trigger administration and counters for the alerting core",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.limiter = limiter
    app.state.alerting = service
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    engine = service.engine

    @app.get("/health")
    @limiter.limit("300/minute")
    async def health_check(request: Request):
        return {
            "status": "healthy",
            "service": "election-alerts",
            "sweeper_running": service.sweeper.is_running,
        }

    @app.get("/alerting/stats")
    @limiter.limit("100/minute")
    async def get_stats(request: Request):
        """Trigger, cooldown, history and filter counters."""
        return {
            "engine": engine.get_stats(),
            "processing": service.processor.get_processing_stats(),
            "sweeps_completed": service.sweeper.sweeps_completed,
        }

    @app.get("/alerting/triggers", response_model=list[TriggerModel])
    @limiter.limit("100/minute")
    async def list_triggers(request: Request):
        return [t.to_dict() for t in engine.registry.list()]

    @app.post("/alerting/triggers", response_model=TriggerModel, status_code=201)
    @limiter.limit("30/minute")
    async def add_trigger(request: Request, trigger: TriggerModel):
        """Add a trigger, replacing any existing trigger with the same id."""
        try:
            record = trigger.to_trigger()
        except ValueError as e:
            raise HTTPException(400, str(e))
        engine.add_trigger(record)
        return record.to_dict()

    @app.delete("/alerting/triggers/{trigger_id}", status_code=204)
    @limiter.limit("30/minute")
    async def remove_trigger(request: Request, trigger_id: str):
        if not engine.remove_trigger(trigger_id):
            raise HTTPException(404, f"Trigger not found: {trigger_id}")

    return app


def main() -> None:
    """Run the admin API with uvicorn."""
    import uvicorn

    from ..core.logging import configure_logging

    configure_logging(settings.log_level, settings.log_format)
    uvicorn.run(create_app(), host=settings.api_host, port=settings.api_port)
