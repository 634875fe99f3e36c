"""
FastAPI dependencies: the Database and AuthorizationEngine built by create_app live on app.state.
"""
from fastapi import Request

from grant_server.authorization import AuthorizationEngine
from grant_server.database import Database


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_authz(request: Request) -> AuthorizationEngine:
    return request.app.state.authz
