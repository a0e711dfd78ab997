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

from revalidate import InMemoryStorage
from revalidate.httpx import CacheClient

cl = CacheClient(storage=InMemoryStorage(capacity=128))

cl.get("https://www.example.com/")
response = cl.get("https://www.example.com/")
print(response.headers["x-cache-status"], response.extensions)
