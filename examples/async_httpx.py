#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "revalidate",
# ]
#
# [tool.uv.sources]
# revalidate = { path = "../", editable = true }
# ///

import asyncio
from typing import cast

from revalidate import ResponseMetadata, SqliteStorage
from revalidate.httpx import AsyncCacheClient


async def fetch_and_print(client, url: str):
    print(f"\n➡ Sending request to {url}...")
    response = await client.get(url)
    meta = cast(ResponseMetadata, response.extensions)

    print(f"🗂 Cache Status: {meta['revalidate_cache_status']}")
    print(f"🔄 From Cache: {meta['revalidate_from_cache']}")
    print(f"📍 Revalidated: {meta['revalidate_revalidated']}")


async def main():
    url = "https://www.example.com/"
    async with AsyncCacheClient(storage=SqliteStorage()) as client:
        await fetch_and_print(client, url)
        await fetch_and_print(client, url)


if __name__ == "__main__":
    asyncio.run(main())
