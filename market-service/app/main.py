# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.kafka_producer import close_kafka_singleton
from app.core.limiter import limiter
from app.db.session import SessionLocal
from app.scheduler import MarketScheduler
from app.services.locks import KeyedLock
from app.services.notifications import OfferNotifier

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Market service starting up...")
    app.state.notifier = OfferNotifier()
    app.state.locks = KeyedLock()
    app.state.scheduler = None

    if settings.SCHEDULER_ENABLED:
        app.state.scheduler = MarketScheduler(
            SessionLocal,
            poll_minutes=settings.SCHEDULER_POLL_MINUTES,
            lookahead_minutes=settings.SCHEDULER_LOOKAHEAD_MINUTES,
            notifier=app.state.notifier,
        )
        app.state.scheduler.start()

    yield

    logger.info("Market service shutting down...")
    if app.state.scheduler is not None:
        app.state.scheduler.shutdown()
    close_kafka_singleton()


app = FastAPI(
    title="Marketplace Negotiation Service",
    version="1.0.0",
    description="""
        **Marketplace Negotiation Service**

        Turn-based offer negotiation between customers and sellers.

        ## Features

        * **Offer Sessions**: Open, counter, accept, reject, cancel and merge offers
        * **Orders**: Created exactly once from an accepted offer
        * **Public Contracts**: Open jobs sellers answer with offers
        * **Contractors**: Organizations with ranked roles and capabilities
        * **Auctions**: Concluded automatically at their end time

        ## Authentication

        All endpoints except `/health` require JWT authentication via the `Authorization: Bearer <token>` header.
        """,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
setup_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,  # Allow specific origins
    allow_credentials=True,  # Allow cookies and authorization headers
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"status": "Market Service is running"}
