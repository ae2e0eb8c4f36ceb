import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatstore.api.router import router as chat_router
from chatstore.config import Settings, settings
from chatstore.services import (
    CannedReplyGenerator,
    HistoryPaginationLoader,
    MessageLifecycleController,
    OpenAIReplyGenerator,
    SimulatedDeliveryChannel,
    SyntheticHistorySource,
)
from chatstore.store import ChatStore, InMemoryPersistence, JsonFilePersistence

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL))
logger = logging.getLogger(__name__)


def build_reply_generator(cfg: Settings):
    if cfg.REPLY_BACKEND == "openai" and cfg.OPENAI_API_KEY:
        logger.info("Reply generator: OpenAI (model=%s)", cfg.OPENAI_MODEL)
        return OpenAIReplyGenerator(api_key=cfg.OPENAI_API_KEY, model=cfg.OPENAI_MODEL)
    if cfg.REPLY_BACKEND == "openai":
        logger.warning("REPLY_BACKEND=openai but no OPENAI_API_KEY, using canned replies")
    return CannedReplyGenerator()


def build_gateway(cfg: Settings):
    if cfg.STORE_BACKEND == "memory":
        return InMemoryPersistence()
    return JsonFilePersistence(cfg.STORE_DATA_DIR)


def create_app(cfg: Settings = settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = ChatStore.open(build_gateway(cfg), default_title=cfg.DEFAULT_SESSION_TITLE)

        lifecycle = MessageLifecycleController(
            store=store,
            channel=SimulatedDeliveryChannel(
                min_delay=cfg.REPLY_DELAY_MIN_SECONDS,
                max_delay=cfg.REPLY_DELAY_MAX_SECONDS,
            ),
            reply_generator=build_reply_generator(cfg),
        )
        pagination = HistoryPaginationLoader(
            store=store,
            source=SyntheticHistorySource(
                allocator=store.ids,
                delay=cfg.HISTORY_DELAY_SECONDS,
                max_messages=cfg.HISTORY_MAX_MESSAGES,
            ),
            batch_size=cfg.HISTORY_BATCH_SIZE,
        )

        app.state.store = store
        app.state.lifecycle = lifecycle
        app.state.pagination = pagination
        logger.info(
            "Chat store ready (%d session(s), backend=%s)",
            len(store.sessions),
            cfg.STORE_BACKEND,
        )
        yield

        await lifecycle.wait_idle()
        store.save()
        logger.info("Shutdown complete")

    api = FastAPI(title="Chat Store", lifespan=lifespan)
    api.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in cfg.FRONTEND_ORIGINS.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    api.include_router(chat_router)

    @api.get("/health")
    async def health():
        return {"status": "ok"}

    return api


api = create_app()
