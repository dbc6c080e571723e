import asyncio

import pytest

from conftest import DAY, CountingGenerator, make_bundle
from cropgen.core.errors import ContentGenerationFailed
from cropgen.services.content_store import ContentStore

pytestmark = pytest.mark.anyio


async def test_second_call_reuses_stored_bundle(store, generator):
    first = await store.get_or_generate(DAY, "Rice", "en")
    second = await store.get_or_generate(DAY, "Rice", "en")
    assert first == second
    assert generator.tips_calls == 1
    assert generator.mcqs_calls == 1
    assert len(first.tips) == 12 and len(first.questions) == 12


async def test_language_aliases_share_one_bundle(store, generator):
    a = await store.get_or_generate(DAY, "Rice", "hi")
    b = await store.get_or_generate(DAY, "Rice", "HINDI")
    assert a.language == b.language == "hi"
    assert generator.tips_calls == 1


async def test_languages_get_separate_bundles(store, generator):
    en = await store.get_or_generate(DAY, "Rice", "en")
    hi = await store.get_or_generate(DAY, "Rice", "hi")
    assert en.key != hi.key
    assert generator.tips_calls == 2


async def test_concurrent_requests_generate_once(store, generator):
    bundles = await asyncio.gather(*[store.get_or_generate(DAY, "Rice", "en") for _ in range(5)])
    assert generator.tips_calls == 1
    assert all(b == bundles[0] for b in bundles)


async def test_transient_failures_are_retried(content_repo):
    generator = CountingGenerator(tips_failures=2)
    store = ContentStore(content_repo, generator, max_retries=3, retry_delay=0)
    bundle = await store.get_or_generate(DAY, "Rice", "en")
    assert generator.tips_calls == 3
    assert len(bundle.tips) == 12


async def test_exhausted_retries_raise_and_store_nothing(content_repo):
    generator = CountingGenerator(mcqs_failures=10)
    store = ContentStore(content_repo, generator, max_retries=3, retry_delay=0)
    with pytest.raises(ContentGenerationFailed) as exc:
        await store.get_or_generate(DAY, "Rice", "en")
    assert exc.value.message == "Failed to generate MCQs"
    assert generator.mcqs_calls == 3
    assert await content_repo.get(DAY, "Rice", "en") is None


async def test_first_stored_bundle_wins(content_repo):
    winner = make_bundle()
    assert await content_repo.create_if_absent(winner) is winner
    loser = make_bundle()
    loser.tips[0].text = "different"
    assert await content_repo.create_if_absent(loser) is winner


async def test_regenerate_overwrites(store, generator):
    await store.get_or_generate(DAY, "Rice", "en")
    await store.regenerate(DAY, "Rice", "en")
    assert generator.tips_calls == 2
    assert await store.get(DAY, "Rice", "en") is not None


async def test_new_day_sweeps_older_bundles(store, content_repo):
    await store.get_or_generate("2026-02-28", "Mango", "en")
    await store.get_or_generate(DAY, "Rice", "en")
    assert await content_repo.get("2026-02-28", "Mango", "en") is None
    assert await content_repo.get(DAY, "Rice", "en") is not None


async def test_clear_all(store, content_repo):
    await store.get_or_generate(DAY, "Rice", "en")
    await store.get_or_generate(DAY, "Rice", "hi")
    assert await store.clear_all() == 2
    assert await content_repo.get(DAY, "Rice", "en") is None
