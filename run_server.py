import os

import uvicorn

from ecosphere.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name="ecosphere")
    logger.info(
        "Starting EcoSphere",
        extra={"cycle_period_seconds": settings.cycle_period_seconds, "upload_sink": settings.upload_sink},
    )

    uvicorn.run(
        "ecosphere.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
