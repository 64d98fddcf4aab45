"""GridHub - API Service Entry Point."""
import os
import sys

# 将当前目录添加到 Python 路径
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import uvicorn

from api.app import create_app
from shared.config import load_settings
from shared.utils.logger import setup_file_logging, setup_logger


def main():
    """Main entry point."""
    config_path = os.environ.get("GRIDHUB_CONFIG", "config.yaml")
    settings = load_settings(config_path)

    logger = setup_logger(level=settings.logging.level)
    if settings.logging.dir:
        setup_file_logging(settings.logging.dir, level=logger.level)

    app = create_app(settings)

    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
