import os

import uvicorn

from .config import get_settings


def main():
    uvicorn.run(
        "catalog.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "5000")),
        log_level=get_settings().log_level.lower(),
    )


if __name__ == "__main__":
    main()
