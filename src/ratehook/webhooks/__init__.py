"""Rate-limited webhook sending for Ratehook.

Provides a per-endpoint handle that queues senders while the endpoint's
rate limit is exhausted and retries with exponential backoff.

Example:
    ```python
    from ratehook.webhooks import WebhookHandle, send_webhook

    # Long-lived handle, shares rate-limit state between sends
    async with WebhookHandle.create(url) as hook:
        await hook.send_json({"content": "hello"})

    # One-off send
    await send_webhook(url, {"content": "hello"})
    ```
"""

from .handle import WebhookHandle, send_webhook
from .pipeline import SendPipeline
from .ratelimit import RateLimitState, ResetScheduler
from .send_queue import SendQueue

__all__ = [
    "RateLimitState",
    "ResetScheduler",
    "SendPipeline",
    "SendQueue",
    "WebhookHandle",
    "send_webhook",
]
