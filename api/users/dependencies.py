"""
Dependencies shared by the users routes.
"""

from __future__ import annotations

from fastapi import Request

from core.db import Database


def get_database(request: Request) -> Database:
    # Set by the app lifespan (or by create_app when a handle is injected).
    return request.app.state.database
