"""
Unlock graph for learning decks.

An edge runs from an info card to each question it unlocks. A question with at
least one incoming edge is gated: it stays out of the queue until one of its
info cards has been read.
"""

from dataclasses import dataclass, field


@dataclass
class UnlockGraph:
    question_ids: set[str] = field(default_factory=set)
    info_card_ids: set[str] = field(default_factory=set)
    # info card id -> question ids, in authored order
    unlocks: dict[str, list[str]] = field(default_factory=dict)
    # question id -> info card ids
    gates: dict[str, list[str]] = field(default_factory=dict)
    # info card id -> referenced question ids missing from the deck
    unresolved_refs: dict[str, list[str]] = field(default_factory=dict)

    def add_question(self, question_id: str) -> None:
        self.question_ids.add(question_id)

    def add_info_card(self, card_id: str) -> None:
        self.info_card_ids.add(card_id)
        self.unlocks.setdefault(card_id, [])

    def add_unlock(self, card_id: str, question_id: str) -> None:
        """Record that reading `card_id` unlocks `question_id`."""
        targets = self.unlocks.setdefault(card_id, [])
        if question_id not in targets:
            targets.append(question_id)
        sources = self.gates.setdefault(question_id, [])
        if card_id not in sources:
            sources.append(card_id)

    def add_unresolved(self, card_id: str, question_id: str) -> None:
        refs = self.unresolved_refs.setdefault(card_id, [])
        if question_id not in refs:
            refs.append(question_id)

    def is_gated(self, question_id: str) -> bool:
        return bool(self.gates.get(question_id))

    def unlocked_by(self, card_id: str) -> list[str]:
        return list(self.unlocks.get(card_id, []))

    def gates_for(self, question_id: str) -> list[str]:
        return list(self.gates.get(question_id, []))

    @property
    def gated_question_ids(self) -> set[str]:
        return {qid for qid, sources in self.gates.items() if sources}

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.unlocks.values())
