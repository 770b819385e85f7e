"""Run the service with uvicorn: ``python -m lessongen``."""

import uvicorn

from lessongen.config import settings


def main() -> None:
    uvicorn.run(
        "lessongen.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
