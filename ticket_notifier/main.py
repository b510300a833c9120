"""FastAPI application entry point."""
from fastapi import FastAPI

from ticket_notifier.logging_config import configure_logging
from ticket_notifier.routers import notifications


configure_logging()

app = FastAPI(title="Ticket Notifier API")


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Simple health probe for liveness checks."""
    return {"status": "ok"}


app.include_router(notifications.router)
