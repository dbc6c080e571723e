import json

import pytest

from conftest import ScriptedClient
from cropgen.core.errors import QuotaExceeded
from cropgen.core.languages import resolve_language, supported_languages
from cropgen.services.content_generators import (
    DEFAULT_EXPLANATION,
    PLACEHOLDER_OPTIONS,
    ContentGenerator,
    build_mcqs_prompt,
    repair_question,
    repair_tip,
)
from cropgen.services.fallback_content import fallback_mcqs, fallback_tips


class AlwaysFailing:
    async def generate(self, prompt, timeout=None):
        raise QuotaExceeded()


@pytest.mark.anyio
@pytest.mark.parametrize("lang", [lang.code for lang in supported_languages()])
async def test_failing_backend_yields_full_fallback_sets(lang):
    gen = ContentGenerator(AlwaysFailing())
    tips = await gen.generate_tips("Wheat", lang)
    mcqs = await gen.generate_mcqs("Wheat", lang)
    assert len(tips) == 12
    assert len(mcqs) == 12
    assert all(t.text for t in tips)
    assert all(len(q.options) == 4 and 0 <= q.correct_answer <= 3 for q in mcqs)


@pytest.mark.anyio
async def test_fallback_uses_language_and_crop():
    gen = ContentGenerator(AlwaysFailing())
    tips = await gen.generate_tips("Cotton", "hi")
    assert tips == fallback_tips("Cotton", "hindi")
    assert any("Cotton" in t.text for t in tips)


@pytest.mark.anyio
async def test_short_tip_list_is_padded():
    gen = ContentGenerator(ScriptedClient('```json\n[{"text": "Water early"}, {"text": "Mulch"}]\n```'))
    tips = await gen.generate_tips("Rice", "en")
    assert len(tips) == 12
    assert [t.text for t in tips[:2]] == ["Water early", "Mulch"]
    assert tips[-1].text == "Practice sustainable Rice farming techniques"


@pytest.mark.anyio
async def test_long_mcq_list_is_truncated_and_short_one_padded_from_fallback():
    item = {"question": "Q?", "options": ["a", "b", "c", "d"], "correctAnswer": 3, "explanation": "E"}
    gen = ContentGenerator(ScriptedClient(json.dumps([item] * 20), json.dumps([item] * 5)))

    mcqs = await gen.generate_mcqs("Rice", "en")
    assert len(mcqs) == 12
    assert all(q.correct_answer == 3 for q in mcqs)

    mcqs = await gen.generate_mcqs("Rice", "en")
    assert len(mcqs) == 12
    assert mcqs[5] == fallback_mcqs("Rice", "english")[5]


@pytest.mark.anyio
async def test_unparseable_output_falls_back():
    gen = ContentGenerator(ScriptedClient("I cannot help with that."))
    assert await gen.generate_mcqs("Maize", "mr") == fallback_mcqs("Maize", "marathi")


@pytest.mark.anyio
async def test_prompt_names_the_language():
    client = ScriptedClient('[{"text": "x"}]')
    await ContentGenerator(client).generate_tips("Onion", "ta")
    assert "Tamil" in client.prompts[0]
    assert "Onion" in client.prompts[0]


def test_mcq_prompt_requests_count():
    prompt = build_mcqs_prompt("Rice", resolve_language("en"), count=12)
    assert "exactly 12 multiple choice questions" in prompt


def test_repair_tip_fills_blanks():
    assert repair_tip({"text": "  Keep fields weeded "}, 0, "Rice").text == "Keep fields weeded"
    assert repair_tip("Plain string tip", 1, "Rice").text == "Plain string tip"
    assert repair_tip({"text": ""}, 4, "Rice").text == "Farming tip 5 for Rice"
    assert repair_tip(None, 2, "Rice").text == "Farming tip 3 for Rice"


@pytest.mark.parametrize("correct", ["2", True, 7, -1, None, 1.5])
def test_repair_question_rejects_bad_answer_index(correct):
    q = repair_question(
        {"question": "Q?", "options": ["a", "b", "c", "d"], "correctAnswer": correct, "explanation": "E"},
        0, "Rice", "english",
    )
    assert q.correct_answer == 0


def test_repair_question_fixes_options_and_text():
    q = repair_question({"options": ["a", "b", "c"], "correct_answer": 2}, 6, "Rice", "english")
    assert q.question == "Question 7 about Rice?"
    assert q.options == PLACEHOLDER_OPTIONS
    assert q.correct_answer == 2
    assert q.explanation == DEFAULT_EXPLANATION

    q = repair_question({"question": "Q?", "options": ["a", "", 3, "d"]}, 0, "Rice", "english")
    assert q.options == ["a", "Option B", "Option C", "d"]


def test_repair_question_replaces_non_object_with_fallback():
    assert repair_question("junk", 2, "Rice", "hindi") == fallback_mcqs("Rice", "hindi")[2]


@pytest.mark.anyio
async def test_single_question_object_is_kept_as_first_question():
    item = {"question": "Which soil suits Rice?", "options": ["Clay", "Sand", "Gravel", "Chalk"],
            "correctAnswer": 0, "explanation": "Clay holds water."}
    mcqs = await ContentGenerator(ScriptedClient(json.dumps(item))).generate_mcqs("Rice", "en")
    assert mcqs[0].question == "Which soil suits Rice?"
    assert mcqs[0].options == ["Clay", "Sand", "Gravel", "Chalk"]
    assert len(mcqs) == 12
