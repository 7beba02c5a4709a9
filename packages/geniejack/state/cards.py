"""
Cards, hands and the shoe.

A Hand only stores its cards; its HandScore is always derived through
calc.scoring.score_hand under the currently folded rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .rng import Random
    from .rules import GameRules


class Suit(Enum):
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"

    @property
    def color(self) -> str:
        return "red" if self in (Suit.HEARTS, Suit.DIAMONDS) else "black"


class Rank(Enum):
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"
    ACE = "A"

    @property
    def is_face(self) -> bool:
        return self in FACE_RANKS

    @property
    def is_numeric(self) -> bool:
        return self not in FACE_RANKS and self is not Rank.ACE

    @property
    def pip_value(self) -> int:
        """Face value of a numeric rank (0 for faces and aces)."""
        return int(self.value) if self.is_numeric else 0


FACE_RANKS = frozenset({Rank.JACK, Rank.QUEEN, Rank.KING})
ALL_SUITS: List[Suit] = list(Suit)
ALL_RANKS: List[Rank] = list(Rank)
SUIT_VALUES = frozenset(s.value for s in Suit)
RANK_VALUES = frozenset(r.value for r in Rank)


@dataclass(frozen=True)
class Card:
    suit: Suit
    rank: Rank

    @property
    def color(self) -> str:
        return self.suit.color

    def to_dict(self) -> dict:
        return {"suit": self.suit.value, "rank": self.rank.value}

    def __str__(self) -> str:
        return f"{self.rank.value}{SUIT_SYMBOLS[self.suit]}"


SUIT_SYMBOLS = {
    Suit.HEARTS: "♥",
    Suit.DIAMONDS: "♦",
    Suit.CLUBS: "♣",
    Suit.SPADES: "♠",
}


@dataclass
class Hand:
    cards: List[Card] = field(default_factory=list)
    is_from_split: bool = False

    def add(self, card: Card) -> None:
        self.cards.append(card)

    def __len__(self) -> int:
        return len(self.cards)

    def copy(self) -> 'Hand':
        return Hand(cards=list(self.cards), is_from_split=self.is_from_split)


@dataclass(frozen=True)
class HandScore:
    value: int
    soft: bool
    busted: bool
    is_blackjack: bool


def build_deck(rules: Optional['GameRules'] = None) -> List[Card]:
    """
    Build an unshuffled shoe: `rules.deck.number_of_decks` standard decks.

    Filtering and augmenting (removed ranks, extra copies, ...) is done by
    modifier deck-transform hooks in the combat handler.
    """
    num_decks = max(1, rules.deck.number_of_decks) if rules is not None else 1
    return [
        Card(suit, rank)
        for _ in range(num_decks)
        for suit in ALL_SUITS
        for rank in ALL_RANKS
    ]


def shuffle(cards: List[Card], rng: 'Random') -> List[Card]:
    """Fisher-Yates shuffle from the end, one draw per position."""
    deck = list(cards)
    for i in range(len(deck) - 1, 0, -1):
        j = int(rng.next() * (i + 1))
        deck[i], deck[j] = deck[j], deck[i]
    return deck
