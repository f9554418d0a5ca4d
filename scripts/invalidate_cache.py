#!/usr/bin/env python3
"""
Invalidate storefront response caches from the command line.

Posts to the admin invalidation endpoint of a running storefront service.
Each service process holds its own cache, so run this against every
instance that should drop its entries.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict, List, Optional

import httpx

INVALIDATE_PATH = "/api/admin/cache/invalidate"


def build_payload(tags: Optional[List[str]], clear_all: bool) -> Dict[str, Any]:
    """Request body for the invalidation endpoint."""
    if clear_all:
        return {"clearAll": True}
    return {"tags": list(tags or [])}


async def invalidate(
    *,
    base_url: str,
    token: str,
    tags: Optional[List[str]],
    clear_all: bool,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Call the invalidation endpoint and return its JSON response."""
    async with httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport) as client:
        response = await client.post(
            INVALIDATE_PATH,
            json=build_payload(tags, clear_all),
            headers={"Authorization": f"Bearer {token}"},
        )
    response.raise_for_status()
    return response.json()


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Invalidate storefront response caches.")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--tag", dest="tags", action="append", help="Cache tag to invalidate (repeatable)")
    target.add_argument("--all", dest="clear_all", action="store_true", help="Clear every cached response")
    parser.add_argument("--url", default=os.getenv("STOREFRONT_API_URL", "http://localhost:8080"), help="Storefront service base URL")
    parser.add_argument("--token", default=os.getenv("STOREFRONT_ADMIN_TOKEN"), help="Admin access token")
    parser.add_argument("--timeout", type=float, default=10.0, help="Request timeout in seconds")
    args = parser.parse_args(argv)
    if not args.token:
        parser.error("an admin token is required (--token or STOREFRONT_ADMIN_TOKEN)")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        result = asyncio.run(
            invalidate(
                base_url=args.url,
                token=args.token,
                tags=args.tags,
                clear_all=args.clear_all,
                timeout=args.timeout,
            )
        )
    except KeyboardInterrupt:
        return 130
    except httpx.HTTPStatusError as exc:
        print(f"[cache-invalidate] rejected: {exc.response.status_code} {exc.response.text}", file=sys.stderr)
        return 1
    except httpx.HTTPError as exc:
        print(f"[cache-invalidate] failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
