"""
Lambda handler for the EduManage API.

Wraps the FastAPI app with Mangum so it can run on AWS Lambda behind
API Gateway.
"""

from __future__ import annotations

import logging

from mangum import Mangum

from edumanage.app import app

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# lifespan="off": Lambda does not deliver ASGI lifespan events
handler = Mangum(
    app,
    lifespan="off",
    api_gateway_base_path="",
)

logger.info("Lambda handler initialized successfully")
