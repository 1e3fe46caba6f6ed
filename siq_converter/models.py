from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Union
from enum import Enum

from siq_converter.errors import InvalidPackError


# Seconds a converted rule stays on screen
DEFAULT_DURATION = 15

Number = Union[int, float]


class QuestionType(Enum):
    NORMAL = "normal"
    SECRET = "secret"
    EMPTY = "empty"


class RuleType(Enum):
    APP = "app"
    EMBEDDED = "embedded"


@dataclass
class Rule:
    """A unit of reveal content shown for a question or its answer."""
    type: RuleType
    content: Optional[str] = None
    duration: Optional[int] = None
    path: Optional[str] = None

    @classmethod
    def embedded(cls, content: str) -> 'Rule':
        return cls(type=RuleType.EMBEDDED, content=content, duration=DEFAULT_DURATION)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'type': self.type.value}
        if self.content is not None:
            data['content'] = self.content
        if self.duration is not None:
            data['duration'] = self.duration
        if self.path is not None:
            data['path'] = self.path
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Rule':
        return cls(
            type=RuleType(data.get('type', RuleType.EMBEDDED.value)),
            content=data.get('content'),
            duration=data.get('duration'),
            path=data.get('path'),
        )


@dataclass
class Price:
    """Point value and scoring metadata for a question."""
    text: str = "0"
    correct: Number = 0
    incorrect: Number = 0
    random_range: str = "null"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'correct': self.correct,
            'incorrect': self.incorrect,
            'random_range': self.random_range,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Price':
        return cls(
            text=str(data.get('text', '0')),
            correct=data.get('correct', 0),
            incorrect=data.get('incorrect', 0),
            random_range=data.get('random_range', 'null'),
        )


@dataclass
class Question:
    id: int
    type: QuestionType = QuestionType.NORMAL
    price: Price = field(default_factory=Price)
    rules: List[Rule] = field(default_factory=list)
    after_round: List[Rule] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type.value,
            'price': self.price.to_dict(),
            'rules': [rule.to_dict() for rule in self.rules],
            'after_round': [rule.to_dict() for rule in self.after_round],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        return cls(
            id=data.get('id', 0),
            type=QuestionType(data.get('type', QuestionType.NORMAL.value)),
            price=Price.from_dict(data.get('price') or {}),
            rules=[Rule.from_dict(r) for r in data.get('rules') or []],
            after_round=[Rule.from_dict(r) for r in data.get('after_round') or []],
        )


@dataclass
class Theme:
    """A named column of questions within a round."""
    id: int
    name: str
    description: Optional[str] = None
    ordered: bool = False
    questions: List[Question] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'id': self.id, 'name': self.name}
        if self.description is not None:
            data['description'] = self.description
        data['ordered'] = self.ordered
        data['questions'] = [q.to_dict() for q in self.questions]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Theme':
        return cls(
            id=data.get('id', 0),
            name=data.get('name', ''),
            description=data.get('description'),
            ordered=bool(data.get('ordered', False)),
            questions=[Question.from_dict(q) for q in data.get('questions') or []],
        )


@dataclass
class Round:
    name: str
    themes: List[Theme] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'themes': [t.to_dict() for t in self.themes]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Round':
        return cls(
            name=data.get('name', ''),
            themes=[Theme.from_dict(t) for t in data.get('themes') or []],
        )


@dataclass
class Pack:
    """Represents a complete quiz pack."""
    author: str
    name: str
    rounds: List[Round] = field(default_factory=list)

    def iter_themes(self):
        for round_ in self.rounds:
            yield from round_.themes

    def iter_questions(self):
        for theme in self.iter_themes():
            yield from theme.questions

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON-ready form of the pack."""
        return {
            'author': self.author,
            'name': self.name,
            'rounds': [r.to_dict() for r in self.rounds],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Pack':
        """Build a pack from its JSON form.

        Raises:
            InvalidPackError: If author, name or the rounds list is missing.
        """
        if not isinstance(data, dict):
            raise InvalidPackError("Invalid pack JSON structure")
        if not data.get('author') or not data.get('name') or not isinstance(data.get('rounds'), list):
            raise InvalidPackError("Invalid pack JSON structure")

        try:
            rounds = [Round.from_dict(r) for r in data['rounds']]
        except (AttributeError, TypeError, ValueError) as e:
            raise InvalidPackError(f"Invalid pack JSON structure: {e}")

        return cls(author=data['author'], name=data['name'], rounds=rounds)
