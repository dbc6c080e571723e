import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Tuple, TypeVar

from cropgen.core.errors import ContentGenerationFailed
from cropgen.core.gameday import utcnow
from cropgen.core.languages import resolve_language
from cropgen.models.schemas import ContentBundle
from cropgen.services.content_generators import ContentGenerator

logger = logging.getLogger("cropgen.content_store")

T = TypeVar("T")

MAX_RETRIES = 3
RETRY_DELAY = 2.0


class ContentStore:
    """Memoizes one generated bundle per (date, crop, language).

    Concurrent requests for the same key inside this process share one
    generation run (per-key lock). Across processes the repository's
    first-writer-wins `create_if_absent` decides which bundle is kept.
    """

    def __init__(
        self,
        repo,
        generator: ContentGenerator,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
    ):
        self.repo = repo
        self.generator = generator
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._locks: Dict[Tuple[str, str, str], asyncio.Lock] = {}

    async def get(self, day: str, crop: str, language: str):
        return await self.repo.get(day, crop, resolve_language(language).code)

    async def get_or_generate(self, day: str, crop: str, language: str) -> ContentBundle:
        code = resolve_language(language).code
        key = (day, crop, code)
        lock = self._locks.setdefault(key, asyncio.Lock())

        async with lock:
            existing = await self.repo.get(day, crop, code)
            if existing:
                return existing

            logger.info("Generating content for %s - %s (%s)", day, crop, code)
            bundle = await self._generate(day, crop, code)
            stored = await self.repo.create_if_absent(bundle)
            logger.info("Content saved for %s - %s (%s)", day, crop, code)

        await self.sweep(day)
        return stored

    async def regenerate(self, day: str, crop: str, language: str) -> ContentBundle:
        """Generate and overwrite, ignoring any stored bundle. Dev only."""
        code = resolve_language(language).code
        logger.warning("Forced regeneration for %s - %s (%s)", day, crop, code)
        bundle = await self._generate(day, crop, code)
        return await self.repo.replace(bundle)

    async def sweep(self, current_day: str) -> int:
        deleted = await self.repo.delete_except(current_day)
        self._locks = {k: v for k, v in self._locks.items() if k[0] == current_day}
        if deleted:
            logger.info("Removed %d stale bundle(s) not dated %s", deleted, current_day)
        return deleted

    async def clear_all(self) -> int:
        self._locks.clear()
        deleted = await self.repo.delete_all()
        logger.warning("Cleared all stored content (%d bundle(s))", deleted)
        return deleted

    async def _generate(self, day: str, crop: str, code: str) -> ContentBundle:
        tips, questions = await asyncio.gather(
            self._with_retries("Tips", lambda: self.generator.generate_tips(crop, code)),
            self._with_retries("MCQs", lambda: self.generator.generate_mcqs(crop, code)),
        )
        return ContentBundle(
            date=day,
            crop=crop,
            language=code,
            tips=tips,
            questions=questions,
            generated_at=utcnow(),
        )

    async def _with_retries(self, label: str, fn: Callable[[], Awaitable[List[T]]]) -> List[T]:
        for attempt in range(1, self.max_retries + 1):
            try:
                items = await fn()
                logger.info("%s generated: %d", label, len(items))
                return items
            except Exception as e:
                logger.error("%s attempt %d/%d failed: %s", label, attempt, self.max_retries, e)
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay)
        raise ContentGenerationFailed(f"Failed to generate {label}")
