"""
Request dependencies
"""

from fastapi import Request

from ..engine import DebtEngine


# Dependency to get the engine the application was created with
def get_engine(request: Request) -> DebtEngine:
    return request.app.state.engine
