import pytest

from cropgen.core.errors import MalformedGenerationOutput
from cropgen.services.json_recovery import clean_json_text, parse_records


def test_plain_array():
    assert parse_records('[{"text": "a"}, {"text": "b"}]') == [{"text": "a"}, {"text": "b"}]


def test_fenced_output_with_prose():
    text = 'Here you go:\n```json\n[{"text": "a"}]\n```\nEnjoy!'
    assert parse_records(text, "Tips") == [{"text": "a"}]


def test_trailing_commas_are_removed():
    assert parse_records('[{"text": "a",}, {"text": "b"},]') == [{"text": "a"}, {"text": "b"}]


def test_wrapped_object_is_unwrapped():
    assert parse_records('{"tips": [{"text": "a"}]}') == [{"text": "a"}]


def test_single_quotes_and_bare_keys_without_brackets():
    text = "{text: 'first'}\n{'text': 'second'}"
    assert parse_records(text) == [{"text": "first"}, {"text": "second"}]


def test_truncated_array_keeps_complete_objects():
    text = '[{"text": "a"}, {"text": "b"}, {"text": "c'
    assert parse_records(text) == [{"text": "a"}, {"text": "b"}]


def test_control_characters_are_stripped():
    assert clean_json_text('[{"text": "a\x07b"}]') == '[{"text": "ab"}]'


@pytest.mark.parametrize("text", ["", "   ", None, "no json here at all", "[1, 2"])
def test_unrecoverable_input_raises(text):
    with pytest.raises(MalformedGenerationOutput) as exc:
        parse_records(text, "MCQs")
    assert "MCQs" in exc.value.message


def test_bare_question_object_is_one_record():
    text = '{"question": "Q?", "options": ["a", "b", "c", "d"], "correctAnswer": 1, "explanation": "E"}'
    records = parse_records(text, "MCQs")
    assert len(records) == 1
    assert records[0]["options"] == ["a", "b", "c", "d"]
    assert records[0]["correctAnswer"] == 1
