"""
RepairDesk Backend — CORS Middleware
=====================================

What:  The app-wide CORS policy, minus paths that answer CORS themselves.
How:   Requests to an exempt path skip CORSMiddleware entirely, so the
       route's own OPTIONS handler and permissive headers reach the client
       unchanged. Every other path gets the configured policy.
Who:   /send-confirmation-email is exempt; it must be callable from any
       browser origin regardless of CORS_ORIGINS.
"""

from typing import Iterable

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class SelectiveCORSMiddleware(CORSMiddleware):

    def __init__(self, app: ASGIApp, exempt_paths: Iterable[str] = (), **kwargs) -> None:
        super().__init__(app, **kwargs)
        self.exempt_paths = frozenset(exempt_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"] in self.exempt_paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
