from __future__ import annotations

from datetime import datetime
from typing import Callable

from fastapi import Request

from .repositories import Repository
from .tools import TodoToolbox


# PUBLIC_INTERFACE
def get_repository(request: Request) -> Repository:
    """The repository owned by the running application (see create_app)."""
    return request.app.state.repository


def get_toolbox(request: Request) -> TodoToolbox:
    return request.app.state.toolbox


def get_clock(request: Request) -> Callable[[], datetime]:
    return request.app.state.clock
