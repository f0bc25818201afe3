"""FastAPI application package for collectbox.

collectbox lets an organizer define a per-collection submission schema,
hand out admin and submission capability links, collect named submitters'
responses and reconcile who has not yet responded. Business logic lives in
`collectbox/logic/`, route handlers in `collectbox/routes/`.
"""

from __future__ import annotations

from collectbox.main import create_app

__all__ = ["create_app"]
