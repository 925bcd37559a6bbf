"""
POS Checkout: server entry point.

    python main.py            # development server on :8000
    uvicorn main:app          # same app, for process managers
"""
import os

import uvicorn

from pos_checkout.main import app

__all__ = ["app"]


if __name__ == "__main__":
    uvicorn.run(
        "pos_checkout.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("ENVIRONMENT", "development").lower() in ("development", "dev"),
    )
