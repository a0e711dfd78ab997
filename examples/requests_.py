#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "revalidate[requests]",
# ]
#
# [tool.uv.sources]
# revalidate = { path = "../", editable = true }
# ///

import sqlite3

import requests

from revalidate import CacheOptions, SqliteStorage
from revalidate.requests import CacheAdapter

session = requests.Session()

adapter = CacheAdapter(
    storage=SqliteStorage(connection=sqlite3.connect(":memory:", check_same_thread=False)),
    options=CacheOptions(serve_from_cache=True),
)

session.mount("http://", adapter)
session.mount("https://", adapter)


def fetch_and_print(url: str):
    print(f"\n➡ Sending request to {url}...")
    response = session.get(url)

    print(f"🗂 Cache Status: {response.headers['x-cache-status']}")
    print(f"📏 Body Size: {len(response.content)}")


if __name__ == "__main__":
    url = "https://www.example.com/"
    fetch_and_print(url)
    fetch_and_print(url)
