from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Set, Tuple
import threading
import time


class QuestionKind(str, Enum):
    MULTIPLE_CHOICE = 'mcq'
    OPEN_TEXT = 'open'


class RoomState(str, Enum):
    IDLE = 'idle'
    ACCEPTING = 'accepting'
    REVEALED = 'revealed'


DEFAULT_POINTS = 10
DEFAULT_DURATION = 30
MAX_CHOICES = 4


@dataclass(frozen=True)
class Question:
    round_name: str = ''
    kind: QuestionKind = QuestionKind.OPEN_TEXT
    prompt: str = ''
    prompt_media: str = ''
    choices: Tuple[str, ...] = ()
    answer: str = ''
    answer_media: str = ''
    points: int = DEFAULT_POINTS
    duration: int = DEFAULT_DURATION

    def to_dict(self):
        return {
            'round': self.round_name,
            'type': self.kind.value,
            'question': self.prompt,
            'image': self.prompt_media,
            'choices': list(self.choices),
            'answer': self.answer,
            'points': self.points,
            'duration': self.duration,
            'answerImage': self.answer_media,
        }


@dataclass
class Player:
    name: str
    token: str = ''
    score: int = 0
    streak: int = 0

    def to_dict(self):
        # streak stays server-side
        return {
            'name': self.name,
            'score': self.score,
        }


@dataclass
class Room:
    code: str
    players: Dict[str, Player] = field(default_factory=dict)
    question: Optional[Question] = None
    accepting: bool = False
    first_correct: Optional[str] = None
    answered: Set[str] = field(default_factory=set)
    round_name: str = ''
    index: int = -1
    last_active: float = field(default_factory=time.monotonic)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def state(self) -> RoomState:
        if self.question is None:
            return RoomState.IDLE
        if self.accepting:
            return RoomState.ACCEPTING
        return RoomState.REVEALED

    def find_player_by_token(self, token: str) -> Optional[str]:
        if not token:
            return None
        for sid, player in self.players.items():
            if player.token == token:
                return sid
        return None
