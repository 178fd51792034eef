# printorder/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .db import close_pool, init_schema
from .routes import orders as orders_router
from .settings import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("printorder")

app = FastAPI(title="Print Order API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(orders_router.router)


@app.get("/")
def root():
    return {"message": "Print Order API is running"}


@app.on_event("startup")
async def _startup_init_db():
    try:
        await init_schema()
        logger.info("orders table ready.")
    except Exception as e:
        # Don't crash; the pool is created again on first use
        logger.error("database init failed (will retry lazily): %s", e)


@app.on_event("shutdown")
async def _shutdown_close_pool():
    await close_pool()
