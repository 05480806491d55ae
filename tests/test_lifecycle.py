import threading

from quizcine.models import Question, QuestionKind, RoomState
from quizcine.services.quiz import lifecycle
from quizcine.services.quiz.lifecycle import EMPTY_ROUND_NOTICE, EXHAUSTED_NOTICE
from quizcine.services.quiz.registry import RoomRegistry
from quizcine.services.quiz.scoring import ScoringRules, submit_answer


BANK = [
    Question(round_name='Classics', kind=QuestionKind.MULTIPLE_CHOICE, prompt='Q1',
             choices=('A', 'B'), answer='A', answer_media='https://img/1', points=10),
    Question(round_name='Classics', kind=QuestionKind.OPEN_TEXT, prompt='Q2', answer='Two', points=10,
             duration=20),
    Question(round_name='Other', prompt='Q3', answer='Three'),
]


def _events(outbox):
    return [m.event for m in outbox]


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_ensure_room_canonicalises_code_and_reuses_room():
    registry = RoomRegistry()
    room = registry.ensure_room(' abcd ')
    assert room.code == 'ABCD'
    assert registry.ensure_room('ABCD') is room
    assert 'abcd' in registry
    assert len(registry) == 1
    assert room.state == RoomState.IDLE
    assert room.index == -1


def test_load_round_reports_count_privately_and_resets_index():
    room = RoomRegistry().ensure_room('R1')
    room.index = 4
    room.accepting = True
    outbox = lifecycle.load_round(room, 'classics', BANK)
    assert _events(outbox) == ['server-round-loaded']
    assert outbox[0].payload == {'count': 2}
    assert outbox[0].private
    assert room.index == -1
    assert room.round_name == 'classics'
    assert room.accepting is True


def test_advance_broadcasts_question_without_answer():
    room = RoomRegistry().ensure_room('R1')
    lifecycle.load_round(room, 'Classics', BANK)
    room.first_correct = 'stale'
    outbox = lifecycle.advance_question(room, BANK)
    assert _events(outbox) == ['question', 'accepting']
    assert outbox[0].payload == {
        'type': 'mcq', 'text': 'Q1', 'image': '', 'choices': ['A', 'B'],
        'allowChange': True, 'duration': 30,
    }
    assert 'answer' not in outbox[0].payload
    assert outbox[1].payload is True
    assert room.state == RoomState.ACCEPTING
    assert room.first_correct is None
    assert room.question is BANK[0]


def test_open_question_hides_choices():
    room = RoomRegistry().ensure_room('R1')
    lifecycle.load_round(room, 'Classics', BANK)
    lifecycle.advance_question(room, BANK)
    outbox = lifecycle.advance_question(room, BANK)
    assert outbox[0].payload['choices'] == []
    assert outbox[0].payload['duration'] == 20


def test_advance_past_the_end_is_idempotent():
    room = RoomRegistry().ensure_room('R1')
    lifecycle.load_round(room, 'Classics', BANK)
    lifecycle.advance_question(room, BANK)
    lifecycle.advance_question(room, BANK)
    last = room.question
    for _ in range(3):
        outbox = lifecycle.advance_question(room, BANK)
        assert _events(outbox) == ['log']
        assert outbox[0].payload == EXHAUSTED_NOTICE
        assert room.index == 1
        assert room.question is last


def test_advance_with_empty_round_sends_notice():
    room = RoomRegistry().ensure_room('R1')
    lifecycle.load_round(room, 'Missing', BANK)
    outbox = lifecycle.advance_question(room, BANK)
    assert [(m.event, m.payload) for m in outbox] == [('log', EMPTY_ROUND_NOTICE)]
    assert room.state == RoomState.IDLE


def test_manual_question_caps_choices_and_filters_blanks():
    room = RoomRegistry().ensure_room('R1')
    outbox = lifecycle.start_manual_question(room, {
        'type': 'mcq', 'text': 'Pick one', 'image': 'https://drive.google.com/file/d/pic/view',
        'choices': ['a', '', 'b', None, 'c', 'd', 'e'], 'answer': 'b', 'points': '20', 'duration': None,
    })
    assert room.question.choices == ('a', 'b', 'c', 'd')
    assert room.question.points == 20
    assert room.question.duration == 30
    assert outbox[0].payload['image'] == 'https://drive.google.com/uc?id=pic'
    assert room.state == RoomState.ACCEPTING


def test_manual_question_without_tag_or_choices_is_open():
    room = RoomRegistry().ensure_room('R1')
    lifecycle.start_manual_question(room, {'text': 'Say it', 'answer': 'x'})
    assert room.question.kind == QuestionKind.OPEN_TEXT


def test_reveal_uses_question_active_when_closed():
    room = RoomRegistry().ensure_room('R1')
    lifecycle.load_round(room, 'Classics', BANK)
    lifecycle.advance_question(room, BANK)
    outbox = lifecycle.reveal(room)
    assert _events(outbox) == ['accepting', 'reveal', 'scores']
    assert outbox[0].payload is False
    assert outbox[1].payload == {'answer': 'A', 'answerImage': 'https://img/1'}
    assert room.state == RoomState.REVEALED


def test_reveal_without_question_broadcasts_empty_values():
    room = RoomRegistry().ensure_room('R1')
    outbox = lifecycle.reveal(room)
    assert outbox[1].payload == {'answer': '', 'answerImage': ''}
    assert room.state == RoomState.IDLE


def test_join_and_rejoin_with_token_keeps_score():
    room = RoomRegistry().ensure_room('R1')
    outbox = lifecycle.join_player(room, 'sid-1', 'Ana', issue_token=lambda: 'tok')
    assert _events(outbox) == ['joined', 'player-joined', 'scores']
    assert outbox[0].private and outbox[0].payload == {'id': 'sid-1', 'token': 'tok'}
    assert outbox[1].payload == {'id': 'sid-1', 'name': 'Ana'}
    room.players['sid-1'].score = 40

    lifecycle.join_player(room, 'sid-2', 'Ana', token='tok')
    assert list(room.players) == ['sid-2']
    assert room.players['sid-2'].score == 40

    lifecycle.join_player(room, 'sid-3', 'Bea', token='unknown')
    assert room.players['sid-3'].score == 0


def test_host_join_replies_scores_privately():
    room = RoomRegistry().ensure_room('R1')
    outbox = lifecycle.host_join(room)
    assert _events(outbox) == ['scores'] and outbox[0].private
    assert room.players == {}


def test_classics_scenario():
    room = RoomRegistry().ensure_room('R1')
    lifecycle.join_player(room, 'a', 'A')
    lifecycle.join_player(room, 'b', 'B')
    lifecycle.load_round(room, 'Classics', BANK)
    lifecycle.advance_question(room, BANK)
    submit_answer(room, 'a', 'A')
    submit_answer(room, 'b', 'a')
    assert (room.players['a'].score, room.players['b'].score) == (15, 10)
    lifecycle.reveal(room)
    lifecycle.advance_question(room, BANK)
    submit_answer(room, 'a', 'One')
    submit_answer(room, 'b', 'Three')
    assert (room.players['a'].score, room.players['b'].score) == (15, 10)
    assert room.players['a'].streak == 0


def test_registry_reaps_idle_rooms():
    clock = FakeClock()
    registry = RoomRegistry(idle_ttl=60, clock=clock)
    registry.ensure_room('OLD')
    clock.now += 30
    with registry.session('NEW'):
        pass
    clock.now += 40
    assert registry.reap_idle() == ['OLD']
    assert registry.codes() == ['NEW']


def test_registry_without_ttl_never_evicts():
    clock = FakeClock()
    registry = RoomRegistry(clock=clock)
    registry.ensure_room('KEEP')
    clock.now += 10 ** 6
    assert registry.reap_idle() == []
    assert 'KEEP' in registry


def test_session_refreshes_activity():
    clock = FakeClock()
    registry = RoomRegistry(idle_ttl=60, clock=clock)
    with registry.session('abc') as room:
        assert room.code == 'ABC'
    clock.now += 50
    with registry.session('ABC'):
        pass
    clock.now += 50
    assert registry.reap_idle() == []


def test_rejoin_keeps_answer_record_for_current_question():
    rules = ScoringRules(one_answer_per_question=True)
    room = RoomRegistry().ensure_room('R1')
    lifecycle.join_player(room, 'sid-1', 'Ana', issue_token=lambda: 'tok')
    lifecycle.start_manual_question(room, {'text': 'Yes or no?', 'answer': 'yes'})
    submit_answer(room, 'sid-1', 'no', rules)
    assert submit_answer(room, 'sid-1', 'yes', rules) == []

    lifecycle.join_player(room, 'sid-2', 'Ana', token='tok')
    assert submit_answer(room, 'sid-2', 'yes', rules) == []
    assert room.answered == {'sid-2'}
    assert room.players['sid-2'].score == 0


def test_rejoin_carries_first_correct_to_new_connection():
    room = RoomRegistry().ensure_room('R1')
    lifecycle.join_player(room, 'sid-1', 'Ana', issue_token=lambda: 'tok')
    lifecycle.start_manual_question(room, {'text': 'Yes?', 'answer': 'yes'})
    submit_answer(room, 'sid-1', 'yes')
    lifecycle.join_player(room, 'sid-2', 'Ana', token='tok')
    assert room.first_correct == 'sid-2'


def test_room_looked_up_just_before_sweep_is_not_evicted():
    clock = FakeClock()
    registry = RoomRegistry(idle_ttl=10, clock=clock)
    registry.ensure_room('X')
    clock.now += 100
    room = registry.ensure_room('X')
    assert registry.reap_idle() == []
    with room.lock:
        lifecycle.join_player(room, 's', 'Ana')
    assert 'X' in registry
    assert list(registry.get('X').players) == ['s']


def test_sweep_skips_room_held_by_an_event():
    clock = FakeClock()
    registry = RoomRegistry(idle_ttl=10, clock=clock)
    registry.ensure_room('BUSY')
    clock.now += 100
    room = registry.get('BUSY')
    held = threading.Event()
    release = threading.Event()

    def hold():
        with room.lock:
            held.set()
            release.wait(5)

    worker = threading.Thread(target=hold)
    worker.start()
    held.wait(5)
    try:
        assert registry.reap_idle() == []
    finally:
        release.set()
        worker.join(5)
    assert registry.reap_idle() == ['BUSY']
