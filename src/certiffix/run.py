#!/usr/bin/env python
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from loguru import logger

if __name__ == "__main__":
    logger.info("certiffix 证书服务启动中")
    load_dotenv(Path.cwd() / ".env")

    from src.certiffix.config import config

    logger.info(f"当前应用环境：{os.getenv('APP_ENV')}")

    uvicorn.run(
        "src.certiffix.main:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )
