# Run with: uvicorn forwarder.main:app --host 0.0.0.0 --port 8000 --reload

from fastapi import Depends, FastAPI

from .config import load_cascade_config
from .cascade import CascadeController
from .notifier import ExhaustionNotifier
from .twilio_routes import router as twilio_router, get_controller
from .logging_config import get_logger

logger = get_logger("main")


def build_controller() -> CascadeController:
    return CascadeController(load_cascade_config(), ExhaustionNotifier.from_env())


app = FastAPI(title="Cascading Call Forwarder")
app.state.controller = build_controller()

app.include_router(twilio_router)


@app.on_event("startup")
def on_startup():
    config = app.state.controller.config
    logger.info("🚀 Cascading call forwarder starting...")
    logger.info(f"📞 Forwarding numbers configured: {len(config.numbers)}")
    logger.info(f"⏱️  Dial timeout: {config.timeout_seconds}s per number, fallback: {config.fallback_mode}")


@app.on_event("shutdown")
async def on_shutdown():
    await app.state.controller.notifier.aclose()


@app.get("/health")
async def health_check(controller: CascadeController = Depends(get_controller)):
    return {
        "status": "healthy",
        "numbers": len(controller.config.numbers),
        "timeout": controller.config.timeout_seconds,
        "fallback_mode": controller.config.fallback_mode,
        "notifications_enabled": controller.notifier.enabled,
    }
