import os

import uvicorn

from matatu_fare.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name="matatu_fare_api")
    logger.info(
        "Starting fare service",
        extra={"weather_source": settings.weather_source, "route_source": settings.route_source},
    )

    uvicorn.run(
        "matatu_fare.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
