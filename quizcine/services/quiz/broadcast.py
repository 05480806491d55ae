"""Projections of room state into outbound Socket.IO payloads.

Event names and payload keys are the wire contract with the browser
clients; keep them stable.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from quizcine.models import Player, Question, QuestionKind, Room


@dataclass(frozen=True)
class Broadcast:
    """One outbound message. ``private`` ones go back to the caller only."""

    event: str
    payload: Any = None
    private: bool = False


Outbox = List[Broadcast]


def scores_payload(room: Room) -> Dict[str, Dict[str, Any]]:
    return {sid: player.to_dict() for sid, player in room.players.items()}


def player_joined_payload(sid: str, player: Player) -> Dict[str, str]:
    return {'id': sid, 'name': player.name}


def question_payload(question: Question, allow_change: bool = True) -> Dict[str, Any]:
    # The answer and answer media stay server-side until reveal.
    return {
        'type': question.kind.value,
        'text': question.prompt or '',
        'image': question.prompt_media or '',
        'choices': list(question.choices) if question.kind == QuestionKind.MULTIPLE_CHOICE else [],
        'allowChange': allow_change,
        'duration': question.duration,
    }


def reveal_payload(question: Optional[Question]) -> Dict[str, str]:
    return {
        'answer': question.answer if question else '',
        'answerImage': question.answer_media if question else '',
    }


def scores(room: Room, private: bool = False) -> Broadcast:
    return Broadcast('scores', scores_payload(room), private=private)


def notice(message: str) -> Broadcast:
    return Broadcast('log', message)
