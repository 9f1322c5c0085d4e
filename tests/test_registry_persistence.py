"""
Tests for session persistence wiring, storage backends, config and factory.
"""

import json

import pytest

from config.config import Config
from conftest import make_result, settle
from extraction import factory
from extraction.codec import PersistenceCodec
from extraction.registry import TaskRegistry
from extraction.state import ExtractState, ExtractStateContainer
from extraction.storage import FileSessionStorage, MemorySessionStorage
from models.extraction_task import ExtractionTask

STORAGE_KEY = "extract-store"


@pytest.fixture
def storage():
    return MemorySessionStorage()


def stored_document(storage, key=STORAGE_KEY):
    return json.loads(storage.get_item(key))


class TestWriteThrough:
    @pytest.mark.asyncio
    async def test_every_change_is_written_without_in_flight_ids(self, storage, extractor, notifier):
        registry = TaskRegistry(extractor=extractor, notifier=notifier, storage=storage)

        registry.start_extract("c1", ["p1"])
        document = stored_document(storage)
        assert document["tasks"] == [["c1", {"webPageIds": ["p1"], "status": "extracting"}]]
        assert "extracting" not in document

        await settle()
        extractor.resolve(0, [make_result("p1", pois=1)])
        await registry.join()

        document = stored_document(storage)
        assert document["tasks"][0][1]["status"] == "completed"
        assert [pair[0] for pair in document["results"]] == ["p1"]

    @pytest.mark.asyncio
    async def test_reload_restores_tasks_and_results_with_empty_in_flight(
        self, storage, extractor, notifier
    ):
        first = TaskRegistry(extractor=extractor, notifier=notifier, storage=storage)
        first.start_extract("c1", ["p1"])
        await settle()
        extractor.resolve(0, [make_result("p1", pois=2)])
        await first.join()
        first.start_extract("c1", ["p2"])

        second = TaskRegistry(extractor=extractor, notifier=notifier, storage=storage)

        assert second.get_task("c1").status == "extracting"
        assert [r.web_page_id for r in second.get_results_by_conversation("c1")] == ["p1"]
        assert second.get_result("p1") == first.get_result("p1")
        assert not second.is_extracting("p2")
        assert first.is_extracting("p2")

        await settle()
        extractor.resolve(1, [])
        await first.join()

    def test_corrupt_storage_starts_empty(self, storage, extractor):
        storage.set_item(STORAGE_KEY, '{"tasks": [["c1", {"status": ')

        registry = TaskRegistry(extractor=extractor, storage=storage)

        assert registry.get_task("c1") is None
        assert dict(registry.state.results) == {}

    def test_storage_write_failure_keeps_state_in_memory(self, extractor):
        class ReadOnlyStorage(MemorySessionStorage):
            def set_item(self, key, value):
                raise OSError("read-only session store")

        registry = TaskRegistry(extractor=extractor, storage=ReadOnlyStorage())
        registry.result_cache.set("p1", make_result("p1"))

        assert registry.has_result("p1")

    def test_write_made_by_earlier_listener_is_persisted(self, storage, extractor):
        container = ExtractStateContainer()

        def add_companion(state):
            if "a" in state.results and "b" not in state.results:
                container.update(lambda s: s.with_results([make_result("b")]))

        container.subscribe(add_companion)
        registry = TaskRegistry(extractor=extractor, container=container, storage=storage)

        registry.result_cache.set("a", make_result("a"))

        assert [pair[0] for pair in stored_document(storage)["results"]] == ["a", "b"]
        assert set(registry.state.results) == {"a", "b"}

    def test_custom_storage_key(self, storage, extractor):
        registry = TaskRegistry(extractor=extractor, storage=storage, storage_key="trip-42")
        registry.result_cache.set("p1", make_result("p1"))

        assert storage.get_item(STORAGE_KEY) is None
        assert stored_document(storage, "trip-42")["results"][0][0] == "p1"


class TestFileSessionStorage:
    def test_round_trip_and_clear(self, tmp_path):
        storage = FileSessionStorage(tmp_path / "session")

        assert storage.get_item(STORAGE_KEY) is None
        storage.set_item(STORAGE_KEY, '{"tasks": [], "results": []}')
        assert storage.get_item(STORAGE_KEY) == '{"tasks": [], "results": []}'

        storage.clear()
        assert storage.get_item(STORAGE_KEY) is None

    def test_no_temp_files_left_behind(self, tmp_path):
        storage = FileSessionStorage(tmp_path)

        storage.set_item(STORAGE_KEY, "one")
        storage.set_item(STORAGE_KEY, "two")

        assert [p.name for p in tmp_path.iterdir()] == [f"{STORAGE_KEY}.json"]
        assert storage.get_item(STORAGE_KEY) == "two"

    def test_key_is_sanitized(self, tmp_path):
        storage = FileSessionStorage(tmp_path)

        storage.set_item("../escape/key", "x")

        assert storage.get_item("../escape/key") == "x"
        assert all(p.parent == tmp_path for p in tmp_path.iterdir())

    def test_remove_item(self, tmp_path):
        storage = FileSessionStorage(tmp_path)
        storage.set_item(STORAGE_KEY, "x")

        storage.remove_item(STORAGE_KEY)
        storage.remove_item(STORAGE_KEY)

        assert storage.get_item(STORAGE_KEY) is None

    def test_registry_persists_to_file(self, tmp_path, extractor):
        storage = FileSessionStorage(tmp_path)
        registry = TaskRegistry(extractor=extractor, storage=storage)
        registry.result_cache.set("p1", make_result("p1", pois=1))

        restored = PersistenceCodec().deserialize(storage.get_item(STORAGE_KEY))
        assert restored.results["p1"] == make_result("p1", pois=1)


class TestConfigAndFactory:
    @pytest.fixture(autouse=True)
    def reset_registry(self):
        factory.set_registry(None)
        yield
        factory.set_registry(None)

    def test_defaults_to_memory_storage(self, monkeypatch):
        monkeypatch.delenv("EXTRACT_STORAGE_DIR", raising=False)
        monkeypatch.delenv("EXTRACT_STORAGE_KEY", raising=False)

        config = Config()

        assert config.EXTRACT_STORAGE_KEY == STORAGE_KEY
        assert config.STORAGE_BACKEND == "memory"
        assert config.validate()
        assert isinstance(factory.create_storage_from_config(config), MemorySessionStorage)
        # Logging settings are read by utils.logger, not Config.
        assert not hasattr(config, "LOG_LEVEL")

    def test_storage_dir_selects_file_storage(self, monkeypatch, tmp_path):
        monkeypatch.setenv("EXTRACT_STORAGE_DIR", str(tmp_path))
        monkeypatch.setenv("EXTRACT_STORAGE_KEY", "session-7")

        config = Config()

        assert config.STORAGE_BACKEND == "file"
        assert "session-7" in config.get_storage_info()
        assert isinstance(factory.create_storage_from_config(config), FileSessionStorage)

    def test_storage_dir_pointing_at_file_is_invalid(self, monkeypatch, tmp_path):
        not_a_dir = tmp_path / "state.json"
        not_a_dir.write_text("{}")
        monkeypatch.setenv("EXTRACT_STORAGE_DIR", str(not_a_dir))

        with pytest.raises(ValueError):
            factory.create_registry_from_env(extractor=None)

    def test_create_registry_from_env_hydrates_file_state(self, monkeypatch, tmp_path, extractor):
        monkeypatch.setenv("EXTRACT_STORAGE_DIR", str(tmp_path))
        monkeypatch.setenv("EXTRACT_STORAGE_KEY", STORAGE_KEY)
        state = ExtractState(
            tasks={"c1": ExtractionTask(web_page_ids=("p1",), status="completed", results=(make_result("p1"),))},
            results={"p1": make_result("p1")},
        )
        FileSessionStorage(tmp_path).set_item(STORAGE_KEY, PersistenceCodec().serialize(state))

        registry = factory.create_registry_from_env(extractor=extractor)

        assert registry.has_conversation_results("c1")
        assert registry.get_result("p1") == make_result("p1")

    def test_process_wide_registry(self, extractor):
        with pytest.raises(RuntimeError):
            factory.get_registry()

        registry = TaskRegistry(extractor=extractor)
        factory.set_registry(registry)

        assert factory.get_registry() is registry
