"""Tests for transcript filtering and merging."""

from __future__ import annotations

import pytest

from src.ingestion.models import CleanSegment, RawTranscriptSegment
from src.ingestion.segmenter import process_transcription_segments


def raw(start: float, end: float, text: str, **kwargs) -> RawTranscriptSegment:
    return RawTranscriptSegment(start=start, end=end, text=text, **kwargs)


class TestFiltering:
    def test_merges_close_segments_and_drops_noise(self) -> None:
        segments = [
            raw(0, 0.5, "uh"),
            raw(1, 3, "Hello there, how are you"),
            raw(3.5, 6, "I am fine thanks"),
        ]
        result = process_transcription_segments(segments, min_length=10, max_length=300)

        assert len(result) == 1
        assert result[0].start == 1
        assert result[0].end == 6
        assert result[0].text == "Hello there, how are you I am fine thanks"
        assert result[0].segment_index == 0

    def test_drops_high_no_speech(self) -> None:
        segments = [raw(0, 5, "music playing loudly", no_speech_prob=0.85)]
        assert process_transcription_segments(segments) == []

    def test_drops_short_duration(self) -> None:
        segments = [raw(0, 0.9, "a very fast sentence indeed")]
        assert process_transcription_segments(segments) == []

    def test_all_short_input_returns_empty(self) -> None:
        segments = [raw(i * 2, i * 2 + 1.5, "ok") for i in range(5)]
        assert process_transcription_segments(segments) == []

    def test_empty_input(self) -> None:
        assert process_transcription_segments([]) == []

    def test_text_is_trimmed(self) -> None:
        result = process_transcription_segments([raw(0, 4, "   padded sentence here   ")])
        assert result[0].text == "padded sentence here"


class TestMerging:
    def test_gap_splits(self) -> None:
        segments = [
            raw(0, 3, "first thought goes here"),
            raw(5.5, 8, "second thought after pause"),
        ]
        result = process_transcription_segments(segments)
        assert [s.text for s in result] == ["first thought goes here", "second thought after pause"]
        assert [s.segment_index for s in result] == [0, 1]

    def test_max_length_splits(self) -> None:
        segments = [raw(i * 3, i * 3 + 2.5, "x" * 60) for i in range(6)]
        result = process_transcription_segments(segments, max_length=150)
        assert all(len(s.text) < 150 for s in result)
        assert len(result) == 3

    def test_merged_metrics(self) -> None:
        segments = [
            raw(0, 2, "alpha beta gamma", tokens=[1, 2], avg_logprob=-0.2, compression_ratio=1.0, no_speech_prob=0.1),
            raw(2.5, 4, "delta epsilon zeta", tokens=[3], avg_logprob=-0.4, compression_ratio=2.0, no_speech_prob=0.3),
        ]
        [merged] = process_transcription_segments(segments)
        assert merged.tokens == [1, 2, 3]
        assert merged.avg_logprob == pytest.approx(-0.3)
        assert merged.compression_ratio == pytest.approx(1.5)
        assert merged.no_speech_prob == pytest.approx(0.3)

    def test_output_is_ordered_and_non_overlapping(self) -> None:
        segments = [raw(i * 4, i * 4 + 1.5, f"sentence number {i} spoken") for i in range(20)]
        result = process_transcription_segments(segments, max_length=80)
        for prev, nxt in zip(result, result[1:]):
            assert prev.end <= nxt.start
        assert [s.segment_index for s in result] == list(range(len(result)))

    def test_idempotent(self) -> None:
        segments = [
            raw(0, 2, "the meeting starts now"),
            raw(2.2, 5, "first item on the agenda"),
            raw(9, 12, "after a long pause we continue"),
            raw(12.5, 12.9, "um"),
            raw(13, 16, "x" * 290),
        ]
        once = process_transcription_segments(segments)
        twice = process_transcription_segments(once)
        assert [(s.start, s.end, s.text) for s in twice] == [(s.start, s.end, s.text) for s in once]


class TestSegmentModels:
    def test_raw_segment_rejects_inverted_range(self) -> None:
        with pytest.raises(ValueError):
            RawTranscriptSegment(start=5, end=5, text="x")

    def test_clean_segment_duration(self) -> None:
        assert CleanSegment(start=1.5, end=4.0, text="x").duration == 2.5
