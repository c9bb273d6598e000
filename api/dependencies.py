"""
FastAPI dependencies (shared across routes).

Components are built once by ``create_app`` from the ``Settings`` object and
kept on ``app.state``; these accessors hand them to route handlers.
"""

from __future__ import annotations

from fastapi import Request

from config.settings import Settings
from connectors.github import GitHubClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_github_client(request: Request) -> GitHubClient:
    return request.app.state.github
