"""
Run the API server:

    python -m todo_assistant

HOST and PORT come from the environment (defaults 0.0.0.0:8081).
"""
from __future__ import annotations

import uvicorn

from .settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("todo_assistant.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
