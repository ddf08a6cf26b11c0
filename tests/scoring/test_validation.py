"""Tests for scoring/validation.py - raw response acceptance."""

import json

from houndcast.scoring.validation import (
    ResponseValidator,
    is_degenerate,
    iter_candidates,
    validate_response,
)

NAMES = ["Swift Arrow", "Blue Comet", "Night Owl", "Red Mist", "Lucky Jet", "Grey Ghost"]


class TestIterCandidates:
    def test_yields_content_per_choice(self, make_chat_response):
        raw = make_chat_response("a", None, "b")
        assert list(iter_candidates(raw)) == ["a", None, "b"]

    def test_non_mapping_yields_nothing(self):
        assert list(iter_candidates(None)) == []
        assert list(iter_candidates({"choices": "nope"})) == []

    def test_missing_message_is_empty(self):
        assert list(iter_candidates({"choices": [{"index": 0}]})) == [None]


class TestValidateResponse:
    def test_accepts_first_valid_candidate(self, make_chat_response, answer_json):
        raw = make_chat_response(answer_json(NAMES))
        result = validate_response(raw)

        assert result.accepted
        assert [p.name for p in result.answer.predictions] == NAMES
        assert result.empty_candidates == 0
        assert result.parse_failures == 0

    def test_predictions_sorted_by_rank(self, make_chat_response, answer_json):
        payload = answer_json(NAMES)
        payload["predictions"].reverse()
        result = validate_response(make_chat_response(payload))

        assert [p.rank for p in result.answer.predictions] == [1, 2, 3, 4, 5, 6]

    def test_skips_empty_and_unparseable_candidates(self, make_chat_response, answer_json):
        raw = make_chat_response(None, "", "{not json", answer_json(NAMES))
        result = validate_response(raw)

        assert result.accepted
        assert result.empty_candidates == 1
        assert result.parse_failures == 2

    def test_blank_content_is_a_parse_failure(self, make_chat_response):
        result = validate_response(make_chat_response("   ", None))

        assert not result.accepted
        assert result.empty_candidates == 1
        assert result.parse_failures == 1

    def test_missing_fields_count_as_parse_failure(self, make_chat_response):
        result = validate_response(make_chat_response(json.dumps({"meta": {}})))

        assert not result.accepted
        assert result.parse_failures == 1

    def test_duplicate_ranks_fail_to_parse(self, make_chat_response, answer_json):
        payload = answer_json(NAMES)
        payload["predictions"][1]["rank"] = 1
        result = validate_response(make_chat_response(payload))

        assert not result.accepted
        assert result.parse_failures == 1

    def test_two_zero_scores_rejected_as_degenerate(self, make_chat_response, answer_json):
        payload = answer_json(NAMES, raw_scores=[9.0, 8.0, 7.0, 6.0, 0.0, 0.0])
        result = validate_response(make_chat_response(payload))

        assert not result.accepted
        assert result.degenerate == 1

    def test_single_zero_score_accepted(self, make_chat_response, answer_json):
        payload = answer_json(NAMES, raw_scores=[9.0, 8.0, 7.0, 6.0, 5.0, 0.0])
        assert validate_response(make_chat_response(payload)).accepted

    def test_degenerate_candidate_skipped_for_next(self, make_chat_response, answer_json):
        bad = answer_json(NAMES, raw_scores=[0.0, 0.0, 7.0, 6.0, 5.0, 4.0])
        good = answer_json(NAMES, summary="second choice")
        result = validate_response(make_chat_response(bad, good))

        assert result.accepted
        assert result.answer.summary == "second choice"
        assert result.degenerate == 1

    def test_no_choices_rejected(self):
        result = validate_response({"choices": []})
        assert not result.accepted
        assert result.empty_candidates == 0


class TestResponseValidator:
    def test_accumulates_counters(self, make_chat_response, answer_json):
        validator = ResponseValidator()

        assert validator.validate(make_chat_response(answer_json(NAMES))) is not None
        assert validator.validate(make_chat_response(None, "garbage")) is None

        assert validator.accepted == 1
        assert validator.rejected == 1
        assert validator.empty_candidates == 1
        assert validator.parse_failures == 1

    def test_is_degenerate_helper(self, make_answer):
        assert is_degenerate(make_answer(NAMES, raw_scores=[1.0, 0.0, 0.0, 2.0, 3.0, 4.0]))
        assert not is_degenerate(make_answer(NAMES))
