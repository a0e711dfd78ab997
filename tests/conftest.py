import os
from typing import Iterator

import pytest


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def use_temp_dir(tmpdir: "os.PathLike[str]") -> Iterator[None]:
    cur_dir = os.getcwd()
    os.chdir(tmpdir)
    yield
    os.chdir(cur_dir)
