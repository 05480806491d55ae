import logging
from dataclasses import dataclass

from quizcine.models import Player, Room
from .broadcast import Broadcast, Outbox, scores
from .normalizer import normalize_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringRules:
    quick_bonus: int = 5
    streak_every: int = 3
    streak_bonus: int = 5
    one_answer_per_question: bool = False

    @classmethod
    def from_config(cls, config) -> 'ScoringRules':
        return cls(
            quick_bonus=int(config.get('QUICK_BONUS', 5)),
            streak_every=int(config.get('STREAK_EVERY', 3)),
            streak_bonus=int(config.get('STREAK_BONUS', 5)),
            one_answer_per_question=bool(config.get('ONE_ANSWER_PER_QUESTION', False)),
        )


def is_correct(submitted, expected) -> bool:
    """Exact match after trimming, lower-casing and stripping accents."""
    return normalize_key(submitted) == normalize_key(expected)


def apply_result(room: Room, sid: str, player: Player, correct: bool, points: int, rules: ScoringRules) -> None:
    """Apply one graded answer to the player's score and streak.

    Correct: +points, +quick_bonus to the first correct responder of the
    question, and +streak_bonus on every ``streak_every``-th consecutive
    correct answer (the streak then restarts at 0). Incorrect: streak reset.
    """
    if not correct:
        player.streak = 0
        return
    player.score += points
    if room.first_correct is None:
        room.first_correct = sid
        player.score += rules.quick_bonus
    player.streak += 1
    if player.streak >= rules.streak_every:
        player.score += rules.streak_bonus
        player.streak = 0


def submit_answer(room: Room, sid: str, raw_answer, rules: ScoringRules = ScoringRules()) -> Outbox:
    """Grade an answer against the room's active question.

    Ignored outside the accepting window, for unknown connections and, when
    ``rules.one_answer_per_question`` is set, for repeat submissions.
    """
    question = room.question
    player = room.players.get(sid)
    if not room.accepting or question is None or player is None:
        logger.debug(f"[answer-ignored] room={room.code} sid={sid} state={room.state.value}")
        return []
    if rules.one_answer_per_question and sid in room.answered:
        logger.debug(f"[answer-repeat] room={room.code} sid={sid}")
        return []
    room.answered.add(sid)

    correct = is_correct(raw_answer, question.answer)
    apply_result(room, sid, player, correct, question.points, rules)
    logger.info(f"[answer] room={room.code} player={player.name} correct={correct} score={player.score}")
    return [
        Broadcast('answer-received', {'id': sid, 'name': player.name}),
        scores(room),
    ]
