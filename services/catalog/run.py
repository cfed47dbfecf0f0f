"""Process entry point for the catalog service: ``python run.py``.

Server settings come from the environment; the orders service expects the
catalog on port 8001 (``CATALOG_BASE_URL``).
"""

import os

import uvicorn


def main():
    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8001")),
        workers=int(os.getenv("UVICORN_WORKERS", str(max(2, (os.cpu_count() or 1))))),
        loop="uvloop",  # requires uvicorn[standard]
        http="h11",
        log_level=os.getenv("LOG_LEVEL", "info"),
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
