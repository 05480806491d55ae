import logging
import uuid
from typing import Any, Callable, Mapping, Optional, Sequence

from quizcine.models import DEFAULT_DURATION, DEFAULT_POINTS, Player, Question, Room
from .broadcast import (
    Broadcast,
    Outbox,
    notice,
    player_joined_payload,
    question_payload,
    reveal_payload,
    scores,
)
from .normalizer import (
    clean_choices,
    filter_round,
    kind_from_tag,
    positive_int,
    resolve_media_reference,
    safe_prompt,
)

logger = logging.getLogger(__name__)

EMPTY_ROUND_NOTICE = 'No questions in this round.'
EXHAUSTED_NOTICE = 'No more questions in this round.'


def new_token() -> str:
    return uuid.uuid4().hex


def join_player(room: Room, sid: str, name: str, token: Optional[str] = None,
                issue_token: Callable[[], str] = new_token) -> Outbox:
    """Register a player for this connection.

    A known ``token`` moves the existing record, score included, onto the
    new connection; otherwise a fresh player starts at 0.
    """
    previous_sid = room.find_player_by_token(token) if token else None
    if previous_sid is not None:
        player = room.players.pop(previous_sid)
        player.name = name
        # answers already given on the old connection still count for this question
        if previous_sid in room.answered:
            room.answered.discard(previous_sid)
            room.answered.add(sid)
        if room.first_correct == previous_sid:
            room.first_correct = sid
        logger.info(f"[player-rejoin] room={room.code} name={name} sid={previous_sid}->{sid}")
    else:
        player = Player(name=name, token=issue_token())
        logger.info(f"[player-join] room={room.code} name={name} sid={sid}")
    room.players[sid] = player
    return [
        Broadcast('joined', {'id': sid, 'token': player.token}, private=True),
        Broadcast('player-joined', player_joined_payload(sid, player)),
        scores(room),
    ]


def host_join(room: Room) -> Outbox:
    return [scores(room, private=True)]


def load_round(room: Room, round_name, questions: Sequence[Question]) -> Outbox:
    room.round_name = str(round_name or '')
    room.index = -1
    count = len(filter_round(questions, room.round_name))
    logger.info(f"[round-load] room={room.code} round={room.round_name} count={count}")
    return [Broadcast('server-round-loaded', {'count': count}, private=True)]


def _activate(room: Room, question: Question, allow_change: bool) -> Outbox:
    room.question = question
    room.accepting = True
    room.first_correct = None
    room.answered = set()
    return [
        Broadcast('question', question_payload(question, allow_change)),
        Broadcast('accepting', True),
    ]


def advance_question(room: Room, questions: Sequence[Question], allow_change: bool = True) -> Outbox:
    """Move to the next question of the selected round.

    Past the last question nothing changes and a notice is sent instead, so
    repeated calls are harmless.
    """
    selected = filter_round(questions, room.round_name)
    if not selected:
        logger.info(f"[round-empty] room={room.code} round={room.round_name}")
        return [notice(EMPTY_ROUND_NOTICE)]
    if room.index + 1 > len(selected) - 1:
        logger.info(f"[round-exhausted] room={room.code} round={room.round_name} index={room.index}")
        return [notice(EXHAUSTED_NOTICE)]
    room.index += 1
    logger.info(f"[question-next] room={room.code} round={room.round_name} index={room.index}/{len(selected)}")
    return _activate(room, selected[room.index], allow_change)


def build_manual_question(payload: Mapping[str, Any]) -> Question:
    """Question typed in by the host, bypassing the question bank."""
    choices = clean_choices(payload.get('choices'))
    return Question(
        round_name='',
        kind=kind_from_tag(payload.get('type'), choices),
        prompt=safe_prompt(payload.get('text')),
        prompt_media=resolve_media_reference(payload.get('image') or ''),
        choices=tuple(choices),
        answer=str(payload.get('answer') or '').strip(),
        answer_media=resolve_media_reference(payload.get('answerImage') or ''),
        points=positive_int(payload.get('points'), DEFAULT_POINTS),
        duration=positive_int(payload.get('duration'), DEFAULT_DURATION),
    )


def start_manual_question(room: Room, payload: Mapping[str, Any], allow_change: bool = True) -> Outbox:
    question = build_manual_question(payload or {})
    logger.info(f"[question-manual] room={room.code} type={question.kind.value}")
    return _activate(room, question, allow_change)


def reveal(room: Room) -> Outbox:
    """Close the answer window and show the answer of the active question."""
    room.accepting = False
    logger.info(f"[reveal] room={room.code} has_question={room.question is not None}")
    return [
        Broadcast('accepting', False),
        Broadcast('reveal', reveal_payload(room.question)),
        scores(room),
    ]
