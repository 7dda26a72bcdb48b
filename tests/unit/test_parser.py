"""
Unit tests for the inference response parser.
"""
from app.models.schemas import Video
from app.services.parser import parse_inference_response


def _videos(*ids):
    return [Video(id=i, title=f"v{i}", category="NBA") for i in ids]


class TestParseInferenceResponse:
    def test_bracketed_reply_skips_malformed_score(self):
        result = parse_inference_response(
            "[123:0.95,456:0.87,789:xx]", _videos(123, 456, 789)
        )

        assert [(r.video_id, r.score, r.rank) for r in result] == [
            (123, 0.95, 1),
            (456, 0.87, 2),
        ]

    def test_unknown_ids_discarded_and_ranks_stay_contiguous(self):
        result = parse_inference_response("5:0.9,1:0.8,2:0.7", _videos(1, 2))

        assert [r.video_id for r in result] == [1, 2]
        assert [r.rank for r in result] == [1, 2]

    def test_keeps_model_order_instead_of_sorting(self):
        result = parse_inference_response("2:0.1,1:0.9", _videos(1, 2))

        assert [r.video_id for r in result] == [2, 1]

    def test_scores_clamped_by_default(self):
        result = parse_inference_response("1:1.7,2:-0.2", _videos(1, 2))

        assert [r.score for r in result] == [1.0, 0.0]

    def test_clamping_can_be_disabled(self):
        result = parse_inference_response("1:1.7", _videos(1), clamp_scores=False)

        assert result[0].score == 1.7

    def test_duplicate_ids_keep_first_occurrence(self):
        result = parse_inference_response("1:0.9,1:0.5,2:0.4", _videos(1, 2))

        assert [(r.video_id, r.score) for r in result] == [(1, 0.9), (2, 0.4)]

    def test_non_finite_scores_skipped(self):
        result = parse_inference_response("1:nan,2:inf,3:0.4", _videos(1, 2, 3))

        assert [r.video_id for r in result] == [3]
        assert result[0].rank == 1

    def test_only_plain_ascii_numerals_accepted(self):
        result = parse_inference_response(
            "1_0:0.5,1:0_5,١:0.5,2:0.٥,3:1e-1,4:.5", _videos(10, 1, 2, 3, 4)
        )

        assert [(r.video_id, r.score) for r in result] == [(3, 0.1), (4, 0.5)]

    def test_whitespace_and_newlines_ignored(self):
        result = parse_inference_response("[ 1 : 0.9 ,\n 2:0.8 ]", _videos(1, 2))

        assert [r.video_id for r in result] == [1, 2]

    def test_tokens_with_extra_separators_skipped(self):
        result = parse_inference_response("1:2:0.5,abc,2:0.6,", _videos(1, 2))

        assert [r.video_id for r in result] == [2]

    def test_empty_reply(self):
        assert parse_inference_response("", _videos(1)) == []
        assert parse_inference_response(None, _videos(1)) == []
