"""
Inference response parser.

Turns the model's free-form `id:score,id:score,...` reply into validated
(video, score) pairs. The reply is untrusted:

- malformed tokens are skipped, never fatal
- ids outside the candidate set are discarded
- the model's own ordering is kept (no re-sort by score)
"""
import logging
import math
import re
from typing import Iterable, List, Optional, Set

from app.models.schemas import ScoredCandidate, Video

logger = logging.getLogger(__name__)

_STRIP_PATTERN = re.compile(r"[\[\]\s]")
_ID_PATTERN = re.compile(r"[+-]?[0-9]+")
_SCORE_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def _parse_token(token: str) -> Optional[tuple]:
    parts = token.split(":")
    if len(parts) != 2:
        return None
    raw_id, raw_score = parts
    # Plain ASCII numerals only; int()/float() also take "1_0" and non-ASCII digits
    if not _ID_PATTERN.fullmatch(raw_id) or not _SCORE_PATTERN.fullmatch(raw_score):
        return None
    video_id = int(raw_id)
    score = float(raw_score)
    if not math.isfinite(score):
        return None
    return video_id, score


def parse_inference_response(
    text: Optional[str],
    candidates: Iterable[Video],
    clamp_scores: bool = True,
) -> List[ScoredCandidate]:
    """
    Extract ranked (video_id, score) pairs from an inference reply.

    Args:
        text: Raw reply text
        candidates: The candidate set offered in the prompt
        clamp_scores: Clamp scores into [0, 1]

    Returns:
        Pairs ranked 1..K in the order they survived filtering; may be empty

    Example:
        >>> parse_inference_response("[123:0.95,456:0.87,789:xx]", videos)
        [ScoredCandidate(video_id=123, score=0.95, rank=1),
         ScoredCandidate(video_id=456, score=0.87, rank=2)]
    """
    if not text:
        return []

    allowed: Set[int] = {video.id for video in candidates}
    seen: Set[int] = set()
    parsed: List[ScoredCandidate] = []
    skipped = 0

    for token in _STRIP_PATTERN.sub("", text).split(","):
        pair = _parse_token(token)
        if pair is None:
            skipped += 1
            continue
        video_id, score = pair
        if video_id not in allowed or video_id in seen:
            skipped += 1
            continue
        if clamp_scores:
            score = min(max(score, 0.0), 1.0)
        seen.add(video_id)
        parsed.append(ScoredCandidate(video_id=video_id, score=score, rank=len(parsed) + 1))

    if skipped:
        logger.debug(f"Inference reply: kept={len(parsed)}, skipped={skipped}")
    return parsed
