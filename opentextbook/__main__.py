"""Run the server: ``python -m opentextbook`` (listens on $PORT, default 3000)."""
import uvicorn

from .core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("opentextbook.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
