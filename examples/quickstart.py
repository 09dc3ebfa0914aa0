#!/usr/bin/env python3
"""Quickstart demo - send a burst of messages through one webhook handle.

Demonstrates:
- WebhookHandle.create(): one handle per webhook URL
- send_json(): color/timestamp normalization on the way out
- Rate limiting: sends beyond the bucket wait in the queue
- Failure reasons instead of exceptions

Prerequisites:
    - Webhook URL in .env or the environment: RATEHOOK_DEMO_WEBHOOK_URL=https://discord.com/api/webhooks/...
"""

import asyncio
import os
from datetime import UTC, datetime

from ratehook import WebhookHandle, configure_logging


async def main() -> None:
    url = os.environ.get("RATEHOOK_DEMO_WEBHOOK_URL")
    if not url:
        print("Set RATEHOOK_DEMO_WEBHOOK_URL to a webhook URL first.")
        return

    configure_logging(level="INFO", format="text")

    async with WebhookHandle.create(url) as hook:
        payloads = [
            {
                "embeds": [
                    {
                        "title": f"Build #{n}",
                        "description": "All checks passed",
                        "color": "#2ecc71",
                        "timestamp": datetime.now(UTC),
                    }
                ]
            }
            for n in range(1, 9)
        ]

        # 8 concurrent sends against a bucket of 5: the last 3 queue for a reset
        results = await asyncio.gather(*(hook.send_json(p) for p in payloads))

        for n, result in enumerate(results, start=1):
            status = "sent" if result.success else f"failed ({result.failure_reason})"
            print(f"Build #{n}: {status}")

        print(f"Remaining budget: {hook.remaining}, rate limited: {hook.is_rate_limited}")


if __name__ == "__main__":
    asyncio.run(main())
