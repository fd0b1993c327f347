#!/usr/bin/env python3
"""Lightweight smoke test for the dropshipping endpoints.

Usage (HTTP):
    python tooling/scripts/smoke_dropshipping.py --base-url http://localhost:8000

Usage (in-process, no network sockets required):
    python tooling/scripts/smoke_dropshipping.py --in-process

The script checks:
1. API health (`/healthz`)
2. Provider registry (`/api/v1/dropshipping/providers/status`)
3. Aggregated catalog (`/api/v1/dropshipping/products`)
4. Vendor call counters (`/api/v1/dropshipping/observability`)

With no API keys configured every provider reports ``disabled`` and the
catalog is empty; the script still passes.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import httpx
from httpx import ASGITransport, Response


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dropship API smoke test")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="Base URL of the FastAPI service (ignored with --in-process)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Request timeout in seconds",
    )
    parser.add_argument(
        "--in-process",
        action="store_true",
        help="Run requests directly against the ASGI app without binding network sockets.",
    )
    return parser.parse_args()


async def _get_json(client: httpx.AsyncClient, path: str):
    response: Response = await client.get(path)
    response.raise_for_status()
    return response.json()


async def _check_endpoints(client: httpx.AsyncClient) -> None:
    body = await _get_json(client, "/healthz")
    if body.get("status") != "ok":
        raise RuntimeError(f"Unexpected health status: {body}")

    providers = await _get_json(client, "/api/v1/dropshipping/providers/status")
    names = {item.get("name") for item in providers}
    if not {"printful", "dsers", "spocket"}.issubset(names):
        raise RuntimeError(f"Provider registry incomplete: {providers}")
    for item in providers:
        if item.get("status") not in {"active", "disabled"}:
            raise RuntimeError(f"Unexpected provider status: {item}")

    products = await _get_json(client, "/api/v1/dropshipping/products?limit=5")
    if not isinstance(products, list):
        raise RuntimeError(f"Catalog payload is not a list: {products}")

    observability_payload = await _get_json(client, "/api/v1/dropshipping/observability")
    expected_observability_keys = {"totals", "per_provider", "events"}
    if not expected_observability_keys.issubset(observability_payload.keys()):
        raise RuntimeError(f"Dropshipping observability payload missing keys: {observability_payload}")
    for key in ("calls", "failures", "retries", "rejected", "circuit_opened"):
        if key not in observability_payload["totals"]:
            raise RuntimeError(f"Dropshipping observability totals missing '{key}': {observability_payload}")


async def run_http(base_url: str, timeout: float) -> None:
    async with httpx.AsyncClient(base_url=base_url, timeout=timeout) as client:
        await _check_endpoints(client)


async def run_in_process(timeout: float) -> None:
    repo_root = Path(__file__).resolve().parents[2]
    api_src = repo_root / "src"
    if str(api_src) not in sys.path:
        sys.path.insert(0, str(api_src))

    from dropship_api.app import create_app  # type: ignore import-position

    app = create_app()
    lifespan = app.router.lifespan_context(app)
    await lifespan.__aenter__()
    try:
        transport = ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver", timeout=timeout) as client:
            await _check_endpoints(client)
    finally:
        await lifespan.__aexit__(None, None, None)


def main() -> int:
    args = parse_args()
    if args.in_process:
        asyncio.run(run_in_process(args.timeout))
    else:
        asyncio.run(run_http(args.base_url, args.timeout))
    print("Dropshipping smoke test passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
