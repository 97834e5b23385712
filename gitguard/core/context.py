# gitguard/core/context.py

import contextvars

correlation_id_ctx = contextvars.ContextVar("correlation_id", default=None)
actor_id_ctx = contextvars.ContextVar("actor_id", default=None)
