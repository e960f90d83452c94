"""Transcript cleanup: drop noise, then merge raw segments into indexable chunks."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from src.ingestion.models import CleanSegment, RawTranscriptSegment

logger = logging.getLogger(__name__)

DEFAULT_MIN_SEGMENT_LENGTH = 10
DEFAULT_MAX_SEGMENT_LENGTH = 300
MAX_NO_SPEECH_PROB = 0.8
MIN_SEGMENT_DURATION = 1.0
MAX_MERGE_GAP = 2.0


def _keep(segment: RawTranscriptSegment | CleanSegment, min_length: int) -> bool:
    return (
        len(segment.text.strip()) >= min_length
        and segment.no_speech_prob < MAX_NO_SPEECH_PROB
        and (segment.end - segment.start) >= MIN_SEGMENT_DURATION
    )


def _to_clean(segment: RawTranscriptSegment | CleanSegment) -> CleanSegment:
    return CleanSegment(
        start=segment.start,
        end=segment.end,
        text=segment.text.strip(),
        tokens=list(segment.tokens),
        avg_logprob=segment.avg_logprob,
        compression_ratio=segment.compression_ratio,
        no_speech_prob=segment.no_speech_prob,
    )


def _merge(current: CleanSegment, segment: RawTranscriptSegment | CleanSegment) -> CleanSegment:
    return CleanSegment(
        start=current.start,
        end=segment.end,
        text=f"{current.text} {segment.text.strip()}",
        tokens=current.tokens + list(segment.tokens),
        avg_logprob=(current.avg_logprob + segment.avg_logprob) / 2,
        compression_ratio=(current.compression_ratio + segment.compression_ratio) / 2,
        no_speech_prob=max(current.no_speech_prob, segment.no_speech_prob),
    )


def process_transcription_segments(
    segments: Sequence[RawTranscriptSegment | CleanSegment],
    min_length: int = DEFAULT_MIN_SEGMENT_LENGTH,
    max_length: int = DEFAULT_MAX_SEGMENT_LENGTH,
) -> list[CleanSegment]:
    """Filter noisy segments and merge the rest into coherent chunks.

    A segment is dropped when its trimmed text is shorter than *min_length*,
    its no-speech probability is at least 0.8, or it lasts under a second.
    Survivors are merged in order while the combined text stays under
    *max_length* characters and the silence between them is under two seconds.
    Merged chunks shorter than *min_length* are dropped at flush time too.

    Args:
        segments: Raw provider segments (clean segments are accepted as well,
            so the function can be re-applied to its own output).
        min_length: Minimum characters for a segment to be kept.
        max_length: Upper bound on merged text length.

    Returns:
        Clean segments numbered by ``segment_index`` in output order.
    """
    logger.info("Processing %d transcription segments", len(segments))
    filtered = [s for s in segments if _keep(s, min_length)]

    processed: list[CleanSegment] = []
    current: CleanSegment | None = None

    def flush() -> None:
        if current is not None and len(current.text) >= min_length:
            current.segment_index = len(processed)
            processed.append(current)

    for segment in filtered:
        if current is None:
            current = _to_clean(segment)
        elif (
            len(current.text) + len(segment.text.strip()) < max_length
            and segment.start - current.end < MAX_MERGE_GAP
        ):
            current = _merge(current, segment)
        else:
            flush()
            current = _to_clean(segment)

    flush()

    logger.info("Processed segments: %d -> %d", len(segments), len(processed))
    return processed
