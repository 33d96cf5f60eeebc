"""Enrolling reference speakers and identifying the speaker of a recording."""
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Optional

from speakervec.core.logging import logger
from speakervec.pipeline import EmbeddingResult
from speakervec.services.vector_store import VectorPoint, VectorStore


@dataclass
class SpeakerVote:
    """Majority vote over the nearest enrolled neighbour of every query vector."""
    counts: Dict[str, int] = field(default_factory=dict)
    speaker: Optional[str] = None
    share: float = 0.0  # fraction of matches that went to ``speaker``
    matches: int = 0

    def to_dict(self) -> dict:
        return {
            "speaker": self.speaker,
            "share": round(self.share, 4),
            "matches": self.matches,
            "counts": self.counts,
        }


class SpeakerService:
    """Thin layer over a vector store keyed by speaker labels."""

    def __init__(self, store: VectorStore):
        self.store = store

    def enroll(self, speaker: str, result: EmbeddingResult) -> int:
        """
        Store every vector of ``result`` under ``speaker``.

        Returns:
            Number of points upserted
        """
        points = [
            VectorPoint(
                id=uuid.uuid4().hex,
                vector=vector,
                payload={"speaker": speaker, "filename": result.source, "index": position},
            )
            for position, vector in enumerate(result.iter_vectors(), start=1)
        ]
        self.store.upsert(points)
        logger.info(f"Enrolled {len(points)} vectors for speaker {speaker} from {result.source}")
        return len(points)

    def identify(self, result: EmbeddingResult) -> SpeakerVote:
        """Search the nearest stored point for each vector and count speakers."""
        counts: Counter = Counter()
        for vector in result.iter_vectors():
            hits = self.store.search(vector, limit=1)
            if hits:
                counts[hits[0].point.payload.get("speaker", "unknown")] += 1

        matches = sum(counts.values())
        if not matches:
            return SpeakerVote()

        speaker, top = counts.most_common(1)[0]
        vote = SpeakerVote(counts=dict(counts), speaker=speaker, share=top / matches, matches=matches)
        logger.info(f"{result.source}: best match {speaker} ({vote.share:.0%} of {matches} vectors)")
        return vote
