"""HTTP middleware: request size limit and request ID.

Applied in create_app; order matters (last added = outermost).
"""

from sharegate.middleware.request_id import RequestIDMiddleware
from sharegate.middleware.request_size_limit import RequestSizeLimitMiddleware

__all__ = [
    "RequestIDMiddleware",
    "RequestSizeLimitMiddleware",
]
