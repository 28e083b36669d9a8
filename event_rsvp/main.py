from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from event_rsvp.core.config import CORS_ORIGINS
from event_rsvp.core.exception_handlers import register_exception_handlers
from event_rsvp.core.logging import setup_logging
from event_rsvp.database.db import Base, engine
from event_rsvp.models import attendances, events  # noqa: F401  (register tables)
from event_rsvp.routes import events as event_routes
from event_rsvp.routes import rsvp

setup_logging()

app = FastAPI(title="Event RSVP")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Create all tables (in production, use migrations such as Alembic)
Base.metadata.create_all(bind=engine)


@app.get("/ping", response_class=PlainTextResponse)
def ping():
    return "PONG"


# Include the routers
app.include_router(event_routes.router)
app.include_router(rsvp.router)
