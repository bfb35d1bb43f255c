"""
Quests and achievements.

Both are counter objectives over Statistics. A quest is handed out and tracked
while active; achievements are always watched. evaluate() reports each one
once, the first time its objective is met.
"""

from dataclasses import dataclass
from typing import Optional

from .statistics import Statistics


@dataclass(frozen=True)
class Objective:
    counter: str
    target: int
    key: Optional[str] = None

    def progress(self, statistics: Statistics) -> int:
        return min(self.target, statistics.get(self.counter, self.key))

    def is_met(self, statistics: Statistics) -> bool:
        return statistics.get(self.counter, self.key) >= self.target


@dataclass(frozen=True)
class Quest:
    id: str
    title: str
    objective: Objective
    description: str = ""


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    objective: Objective


@dataclass(frozen=True)
class Completion:
    kind: str  # "quest" or "achievement"
    id: str
    title: str


class QuestBook:
    def __init__(self, quests=(), achievements=()):
        self.active: dict[str, Quest] = {q.id: q for q in quests}
        self.achievements: dict[str, Achievement] = {a.id: a for a in achievements}
        self.completed: list[str] = []
        self.unlocked: list[str] = []

    def add_quest(self, quest: Quest) -> None:
        if quest.id not in self.completed:
            self.active[quest.id] = quest

    def get(self, quest_id: str) -> Optional[Quest]:
        return self.active.get(quest_id)

    def progress(self, quest_id: str, statistics: Statistics) -> tuple[int, int]:
        quest = self.active[quest_id]
        return quest.objective.progress(statistics), quest.objective.target

    def evaluate(self, statistics: Statistics) -> list[Completion]:
        """Mark and return everything newly satisfied."""
        completions = []
        for quest_id, quest in list(self.active.items()):
            if quest.objective.is_met(statistics):
                del self.active[quest_id]
                self.completed.append(quest_id)
                completions.append(Completion("quest", quest.id, quest.title))

        for achievement in self.achievements.values():
            if achievement.id in self.unlocked:
                continue
            if achievement.objective.is_met(statistics):
                self.unlocked.append(achievement.id)
                completions.append(Completion("achievement", achievement.id, achievement.title))
        return completions

    def reset(self) -> None:
        self.active.clear()
        self.completed.clear()
        self.unlocked.clear()


def default_achievements() -> list[Achievement]:
    return [
        Achievement("first_blood", "First Blood", Objective("kills", 1)),
        Achievement("gatherer", "Gatherer", Objective("harvests", 10)),
        Achievement("wanderer", "Wanderer", Objective("moves", 50)),
        Achievement("artisan", "Artisan", Objective("crafted", 5)),
    ]
