import pytest


@pytest.fixture
def anyio_backend():
    # The code under test is asyncio-based (aio-pika, asyncio.to_thread).
    return "asyncio"
