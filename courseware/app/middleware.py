"""Middleware Starlette ajoutant un identifiant de requête (en-tête X-Request-ID).

L'identifiant entrant est conservé s'il existe, sinon un UUID est généré; il est renvoyé sur la
réponse et sert de `trace_id` dans les enveloppes d'erreur.
"""

from collections.abc import Callable
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propage un identifiant de requête sur chaque réponse HTTP."""

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID") -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next: Callable):
        request_id = request.headers.get(self.header_name) or str(uuid4())
        response = await call_next(request)
        response.headers[self.header_name] = request_id
        return response
