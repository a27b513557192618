"""Encrypted survey service.

Stores encrypted survey answers and maintains encrypted per-option tallies
without ever decrypting an individual answer. Business logic lives in
`encsurvey/logic/` and HTTP route handlers in `encsurvey/routes/`.
"""

from __future__ import annotations

from encsurvey.main import create_app

__all__ = ["create_app"]
