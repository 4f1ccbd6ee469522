"""
Embedding providers and the shared, lazily loaded embedding model.
"""

from __future__ import annotations

import asyncio
import math
import threading
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Generic,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    TypeVar,
    runtime_checkable,
)

import numpy as np
import structlog

from ..config.config import EmbeddingSettings
from ..exceptions import EmbeddingUnavailable

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer

# Optional ML dependencies
try:
    from sentence_transformers import SentenceTransformer

    HAS_SENTENCE_TRANSFORMERS = True
except ImportError:
    HAS_SENTENCE_TRANSFORMERS = False
    SentenceTransformer = None

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Batch text embedder returning L2-normalized vectors of a fixed dimension."""

    async def embed(self, texts: Sequence[str]) -> Any:
        """Embed ``texts``; the result is anything :func:`to_matrix` understands."""
        ...


class EmbeddingModelCache(Generic[T]):
    """Lazily loaded shared model with single-flight initialization.

    Concurrent callers of :meth:`get_or_init` before the model is ready all
    await the same load and receive the same instance. A failed load is
    reported to every waiter and leaves the cache empty, so the next call
    starts a fresh load.
    """

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._instance: Optional[T] = None
        self._pending: Optional[asyncio.Future[T]] = None
        self.loads = 0

    @property
    def ready(self) -> bool:
        return self._instance is not None

    async def get_or_init(self) -> T:
        if self._instance is not None:
            return self._instance

        if self._pending is None:
            logger.debug("Loading embedding model")
            self._pending = asyncio.ensure_future(self._load())
        else:
            logger.debug("Awaiting shared embedding model load")

        pending = self._pending
        try:
            return await asyncio.shield(pending)
        except BaseException:
            if pending.done() and self._pending is pending:
                self._pending = None
            raise

    async def _load(self) -> T:
        self.loads += 1
        loop = asyncio.get_running_loop()
        instance = await loop.run_in_executor(None, self._factory)
        self._instance = instance
        self._pending = None
        return instance

    def reset(self) -> None:
        """Drop the cached model; the next call loads it again."""
        self._instance = None
        self._pending = None


def load_sentence_transformer(settings: EmbeddingSettings) -> SentenceTransformer:
    """Instantiate the configured sentence-transformers model."""
    if not HAS_SENTENCE_TRANSFORMERS or SentenceTransformer is None:
        raise EmbeddingUnavailable("sentence-transformers is required for SentenceTransformerEmbedder")
    device = None if settings.device == "auto" else settings.device
    logger.info("Initializing embedding model", model=settings.model_name, device=device or "auto")
    return SentenceTransformer(settings.model_name, device=device)


_shared_caches: Dict[Tuple[str, str], EmbeddingModelCache[Any]] = {}
_shared_caches_lock = threading.Lock()


def shared_model_cache(settings: EmbeddingSettings) -> EmbeddingModelCache[Any]:
    """Process-wide cache for one model name and device.

    Embedders built without an explicit cache share it, so every session in a
    process loads a given model once.
    """
    key = (settings.model_name, settings.device)
    with _shared_caches_lock:
        cache = _shared_caches.get(key)
        if cache is None:
            frozen = settings.model_copy()
            cache = EmbeddingModelCache(lambda: load_sentence_transformer(frozen))
            _shared_caches[key] = cache
        return cache


class SentenceTransformerEmbedder:
    """Embedding provider backed by a shared sentence-transformers model."""

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        cache: EmbeddingModelCache[Any] | None = None,
    ) -> None:
        self.settings = settings or EmbeddingSettings()
        self.cache = cache or shared_model_cache(self.settings)

    async def embed(self, texts: Sequence[str]) -> np.ndarray:
        model = await self.cache.get_or_init()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: model.encode(
                list(texts),
                batch_size=self.settings.batch_size,
                normalize_embeddings=True,
                convert_to_numpy=True,
                show_progress_bar=False,
            ),
        )


def to_matrix(embeddings: Any) -> Optional[np.ndarray]:
    """Normalize provider output into a 2-D float32 row-major matrix.

    Accepts numpy arrays, nested or flat lists, objects exposing ``tolist()``
    and ``{"data": ..., "dims": [...]}`` mappings. Returns ``None`` when the
    output holds no usable vectors.
    """
    if embeddings is None:
        return None

    if isinstance(embeddings, Mapping) and "data" in embeddings and "dims" in embeddings:
        return _from_flat(embeddings["data"], list(embeddings["dims"]))

    if isinstance(embeddings, np.ndarray):
        array = embeddings
    elif hasattr(embeddings, "tolist") and not isinstance(embeddings, (list, tuple)):
        return to_matrix(embeddings.tolist())
    elif isinstance(embeddings, (list, tuple)):
        if len(embeddings) == 0:
            return None
        if isinstance(embeddings[0], (list, tuple, np.ndarray)):
            return _from_rows(embeddings)
        array = np.asarray(embeddings, dtype=np.float32)
    else:
        return None

    if array.size == 0:
        return None
    if array.ndim == 1:
        array = array.reshape(1, -1)
    elif array.ndim > 2:
        array = array.reshape(array.shape[0], -1)
    return np.ascontiguousarray(array, dtype=np.float32)


def _from_flat(data: Any, dims: list[int]) -> Optional[np.ndarray]:
    flat = np.asarray(data, dtype=np.float32).reshape(-1)
    if not dims:
        dims = [flat.size]
    rows = 1 if len(dims) == 1 else int(dims[0])
    cols = int(dims[0]) if len(dims) == 1 else int(math.prod(dims[1:]))
    if not rows or not cols or flat.size < rows * cols:
        return None
    return np.ascontiguousarray(flat[: rows * cols].reshape(rows, cols))


def _from_rows(rows: Sequence[Any]) -> Optional[np.ndarray]:
    """Ragged rows are padded with zeros (or cut) to the first row's length."""
    cols = len(rows[0])
    if not cols:
        return None
    matrix = np.zeros((len(rows), cols), dtype=np.float32)
    for index, row in enumerate(rows):
        values = np.asarray(row, dtype=np.float32).reshape(-1)[:cols]
        matrix[index, : values.size] = values
    return matrix
