"""CORS configuration for the browser survey client.

The web client calls the API from its own origin and reads the request id
header for support correlation.
"""

from __future__ import annotations

from typing import Iterable
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


EXPOSE_HEADERS: list[str] = [
    "X-Request-Id",
    "Content-Disposition",
]


def apply_cors(app: FastAPI, *, origins: Iterable[str] | None = None) -> None:
    allow_origins = list(origins or ["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        # Credentials cannot be combined with a wildcard origin
        allow_credentials="*" not in allow_origins,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Caller-Address", "X-Request-Id"],
        expose_headers=EXPOSE_HEADERS,
    )


__all__ = ["apply_cors", "EXPOSE_HEADERS"]
