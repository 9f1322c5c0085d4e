import asyncio
import os
import tempfile

import pytest
from dotenv import load_dotenv

# Keep test logs out of the working tree; must run before the logger is imported.
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "extract-cache-test-logs"))

# Load environment variables from .env file for tests
load_dotenv()

from extraction.registry import TaskRegistry  # noqa: E402
from models.extract_result import ExtractResult  # noqa: E402


class FakeExtractor:
    """Extractor whose calls stay pending until the test resolves or rejects them."""

    def __init__(self):
        self.requests = []
        self._futures: list[asyncio.Future] = []

    async def __call__(self, request):
        future = asyncio.get_running_loop().create_future()
        self.requests.append(request)
        self._futures.append(future)
        return await future

    def resolve(self, index, results):
        self._futures[index].set_result(results)

    def reject(self, index, error):
        self._futures[index].set_exception(error)


class RecordingNotifier:
    def __init__(self):
        self.successes: list[str] = []
        self.errors: list[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


async def settle():
    """Let scheduled extraction tasks run up to their next suspension point."""
    for _ in range(3):
        await asyncio.sleep(0)


def make_result(web_page_id, pois=0, non_pois=0, message=None, title=None):
    return ExtractResult(
        web_page_id=web_page_id,
        pois=[{"poiId": f"{web_page_id}-poi-{i}", "name": f"Place {i}"} for i in range(pois)],
        non_pois=[
            {"id": f"{web_page_id}-item-{i}", "type": "FOOD", "title": f"Tip {i}"}
            for i in range(non_pois)
        ],
        message=message,
        web_page_title=title,
    )


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def registry(extractor, notifier):
    return TaskRegistry(extractor=extractor, notifier=notifier)
