"""
FastAPI 应用入口点。
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from src.certiffix.config import config
from src.certiffix.issuance.router import router as issuance_router
from src.certiffix.store.core import ensure_layout
from src.certiffix.store.schemas import TrustStoreConfig


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = TrustStoreConfig(base_dir=config.config_dir)
    if ensure_layout(store):
        logger.info(f"信任库目录已就绪: {store.base_dir}")
    else:
        logger.warning(f"信任库目录不可写，仅支持查看已有证书: {store.base_dir}")
    yield


app = FastAPI(title="certiffix development certificate service", lifespan=lifespan)

app.include_router(issuance_router, prefix="/v1")

logger.info(f"config: {config.model_dump_json(indent=4)}")
