"""Data-Service Handlers — file intake and diagnostics (2 methods).

Both handlers are synchronous: the dispatcher runs them in the threadpool,
so hashing large uploads never blocks the event loop.
"""

import hashlib

from restrpc.core.contracts import HandlerContext
from restrpc.core.errors import ActionError


class DataServiceHandlers:
    """Stateless handlers; no DB access."""

    def upload(self, payload: dict, context: HandlerContext) -> dict:
        if not context.files:
            raise ActionError(
                "At least one file is required (multipart 'file' or 'files')",
                "NO_FILES",
            )
        return {
            "label": payload.get("label"),
            "files": [
                {
                    "filename": f.filename,
                    "contentType": f.content_type,
                    "size": f.size,
                    "sha256": hashlib.sha256(f.content).hexdigest(),
                }
                for f in context.files
            ],
        }

    def echo(self, payload: dict, context: HandlerContext) -> dict:
        return {
            "payload": payload,
            "resourceId": context.resource_id,
            "requestId": context.request_id,
        }
