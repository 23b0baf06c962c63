"""Factories for tests and prototyping."""

from __future__ import annotations

from dataclasses import dataclass, field
from random import Random

from faker import Faker


@dataclass(slots=True)
class PlayerFactory:
    """Telegram-shaped identifiers: positive user ids, negative group chat ids."""

    faker: Faker = field(default_factory=Faker)

    def user_id(self) -> int:
        return self.faker.unique.random_int(min=10_000, max=9_999_999)

    def user_ids(self, count: int) -> list[int]:
        return [self.user_id() for _ in range(count)]

    def arena_id(self) -> int:
        return -self.faker.unique.random_int(min=1_000_000_000, max=1_999_999_999)

    def reason(self) -> str:
        return self.faker.sentence(nb_words=4)


@dataclass(slots=True)
class LedgerScenarioFactory:
    rng: Random = field(default_factory=Random)

    def amounts(self, count: int, *, low: int = -50, high: int = 100) -> list[int]:
        """Random non-zero signed amounts."""
        amounts: list[int] = []
        while len(amounts) < count:
            amount = self.rng.randint(low, high)
            if amount:
                amounts.append(amount)
        return amounts
