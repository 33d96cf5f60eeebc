"""Vector store interface and an in-memory implementation for development."""
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import numpy as np

from speakervec.core.errors import ConfigError
from speakervec.core.logging import logger


@dataclass
class VectorPoint:
    """One upsert request: id, fixed-dimension vector and free-form payload."""
    id: str
    vector: List[float]
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ScoredPoint:
    """A search hit with its cosine similarity."""
    point: VectorPoint
    score: float


class VectorStore(ABC):
    """Sink and source of embeddings, searched by cosine similarity."""

    def __init__(self, dimension: int):
        self.dimension = dimension

    def check_dimension(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dimension:
            raise ConfigError(
                f"Vector of dimension {len(vector)} does not fit store dimension {self.dimension}"
            )

    @abstractmethod
    def upsert(self, points: Sequence[VectorPoint]) -> None:
        """Insert or replace points by id."""

    @abstractmethod
    def search(self, vector: Sequence[float], limit: int = 1) -> List[ScoredPoint]:
        """Return up to ``limit`` points ranked by descending cosine similarity."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored points."""


class InMemoryVectorStore(VectorStore):
    """Keeps points in process memory; no persistence."""

    def __init__(self, dimension: int):
        super().__init__(dimension)
        self._points: Dict[str, VectorPoint] = {}
        self._lock = threading.Lock()

    def upsert(self, points: Sequence[VectorPoint]) -> None:
        for point in points:
            self.check_dimension(point.vector)
        with self._lock:
            for point in points:
                self._points[point.id] = point
        logger.debug(f"Upserted {len(points)} points (total {len(self._points)})")

    def search(self, vector: Sequence[float], limit: int = 1) -> List[ScoredPoint]:
        self.check_dimension(vector)
        with self._lock:
            points = list(self._points.values())
        if not points:
            return []

        query = np.asarray(vector, dtype=np.float64)
        matrix = np.asarray([p.vector for p in points], dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

        order = np.argsort(-scores, kind="stable")[:limit]
        return [ScoredPoint(point=points[i], score=float(scores[i])) for i in order]

    def count(self) -> int:
        with self._lock:
            return len(self._points)
