"""API server entry point for python -m img2vid.api"""
import logging

import uvicorn
from img2vid.config import settings

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    uvicorn.run(
        "img2vid.api.app:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )
