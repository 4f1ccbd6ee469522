"""
Unit tests for embedding providers and the shared model cache.
"""

import asyncio
import threading
import time
from unittest.mock import patch

import numpy as np
import pytest

from passagelink.config import EmbeddingSettings
from passagelink.exceptions import EmbeddingUnavailable
from passagelink.matching import (
    EmbeddingModelCache,
    EmbeddingProvider,
    SentenceTransformerEmbedder,
    load_sentence_transformer,
    shared_model_cache,
    to_matrix,
)


class CountingFactory:
    def __init__(self, fail_times: int = 0, delay: float = 0.05) -> None:
        self.calls = 0
        self.fail_times = fail_times
        self.delay = delay
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
            call = self.calls
        time.sleep(self.delay)
        if call <= self.fail_times:
            raise RuntimeError("download failed")
        return object()


class FakeModel:
    def __init__(self) -> None:
        self.kwargs = None

    def encode(self, texts, **kwargs):
        self.kwargs = kwargs
        return np.array([[float(len(text)), 1.0] for text in texts], dtype=np.float32)


class TestEmbeddingModelCache:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_load(self):
        factory = CountingFactory()
        cache = EmbeddingModelCache(factory)

        instances = await asyncio.gather(*(cache.get_or_init() for _ in range(5)))

        assert factory.calls == 1
        assert cache.loads == 1
        assert all(instance is instances[0] for instance in instances)
        assert cache.ready

    @pytest.mark.asyncio
    async def test_failed_load_is_retried(self):
        factory = CountingFactory(fail_times=1)
        cache = EmbeddingModelCache(factory)

        results = await asyncio.gather(cache.get_or_init(), cache.get_or_init(), return_exceptions=True)
        assert all(isinstance(result, RuntimeError) for result in results)
        assert not cache.ready

        instance = await cache.get_or_init()
        assert instance is not None
        assert factory.calls == 2

    @pytest.mark.asyncio
    async def test_reset(self):
        cache = EmbeddingModelCache(CountingFactory(delay=0))
        first = await cache.get_or_init()
        cache.reset()
        second = await cache.get_or_init()
        assert first is not second
        assert cache.loads == 2


class TestSentenceTransformerEmbedder:
    @pytest.mark.asyncio
    async def test_embed_normalizes_through_model(self):
        model = FakeModel()
        embedder = SentenceTransformerEmbedder(EmbeddingSettings(batch_size=8), EmbeddingModelCache(lambda: model))

        vectors = await embedder.embed(["ab", "abcd"])

        assert vectors.shape == (2, 2)
        assert model.kwargs["normalize_embeddings"] is True
        assert model.kwargs["batch_size"] == 8
        assert isinstance(embedder, EmbeddingProvider)

    @patch("passagelink.matching.embeddings.HAS_SENTENCE_TRANSFORMERS", False)
    def test_missing_library(self):
        with pytest.raises(EmbeddingUnavailable):
            load_sentence_transformer(EmbeddingSettings())

    @pytest.mark.asyncio
    @patch("passagelink.matching.embeddings.HAS_SENTENCE_TRANSFORMERS", False)
    async def test_embed_without_library_raises(self):
        with pytest.raises(EmbeddingUnavailable):
            await SentenceTransformerEmbedder().embed(["text"])

class TestSharedModelCache:
    def test_same_model_shares_one_cache(self):
        settings = EmbeddingSettings(model_name="shared-cache-model")
        first = SentenceTransformerEmbedder(settings)
        second = SentenceTransformerEmbedder(EmbeddingSettings(model_name="shared-cache-model", batch_size=4))

        assert first.cache is second.cache
        assert shared_model_cache(settings) is first.cache

    def test_other_model_or_device_gets_its_own_cache(self):
        base = shared_model_cache(EmbeddingSettings(model_name="model-a"))

        assert shared_model_cache(EmbeddingSettings(model_name="model-b")) is not base
        assert shared_model_cache(EmbeddingSettings(model_name="model-a", device="cpu")) is not base

    @pytest.mark.asyncio
    async def test_embedders_load_the_model_once(self):
        model = FakeModel()
        settings = EmbeddingSettings(model_name="load-once-model")
        with patch("passagelink.matching.embeddings.load_sentence_transformer", return_value=model) as load:
            first = SentenceTransformerEmbedder(settings)
            second = SentenceTransformerEmbedder(settings)
            vectors = await asyncio.gather(first.embed(["a"]), second.embed(["bb"]))

        assert load.call_count == 1
        assert [matrix.shape for matrix in vectors] == [(1, 2), (1, 2)]



class TestToMatrix:
    def test_ndarray(self):
        matrix = to_matrix(np.ones((2, 3), dtype=np.float64))
        assert matrix.shape == (2, 3)
        assert matrix.dtype == np.float32

    def test_vector_becomes_one_row(self):
        assert to_matrix(np.array([1.0, 2.0])).shape == (1, 2)
        assert to_matrix([1.0, 2.0, 3.0]).shape == (1, 3)

    def test_nested_lists_and_ragged_rows(self):
        matrix = to_matrix([[1, 2, 3], [4, 5]])
        assert matrix.tolist() == [[1, 2, 3], [4, 5, 0]]

    def test_flat_data_with_dims(self):
        matrix = to_matrix({"data": [1, 2, 3, 4, 5, 6], "dims": [2, 3]})
        assert matrix.tolist() == [[1, 2, 3], [4, 5, 6]]
        assert to_matrix({"data": [1, 2], "dims": [2, 3]}) is None

    def test_tolist_objects(self):
        class Tensor:
            def tolist(self):
                return [[0.5, 0.5]]

        assert to_matrix(Tensor()).tolist() == [[0.5, 0.5]]

    def test_higher_rank_is_flattened_per_row(self):
        assert to_matrix(np.zeros((2, 2, 3))).shape == (2, 6)

    @pytest.mark.parametrize("value", [None, [], np.zeros((0, 4)), "text"])
    def test_unusable(self, value):
        assert to_matrix(value) is None
