from flask import current_app, request
from flask_socketio import emit, join_room

from quizcine.services.quiz import lifecycle
from quizcine.services.quiz.broadcast import Outbox
from quizcine.services.quiz.registry import canonical_code
from quizcine.services.quiz.scoring import submit_answer


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _state():
    return current_app.extensions['quizcine']


def _payload(data) -> dict:
    return data if isinstance(data, dict) else {}


def _room_code(data) -> str:
    return canonical_code(_payload(data).get('room'))


def _allow_change() -> bool:
    return not _state()['rules'].one_answer_per_question


def _deliver(outbox: Outbox, code: str) -> None:
    """Push each message to the room, or back to the caller when private."""
    sid = _get_sid()
    for message in outbox:
        emit(message.event, message.payload, to=sid if message.private else code)


def handle_connect(auth=None):
    current_app.logger.info(f"[connect] sid={_get_sid()}")


def handle_disconnect(*_args):
    # Players stay on the scoreboard; rejoining with their token restores them
    current_app.logger.info(f"[disconnect] sid={_get_sid()}")


def handle_join(data):
    code = _room_code(data)
    name = str(_payload(data).get('name') or '').strip()
    if not code or not name:
        current_app.logger.debug(f"[join-ignored] sid={_get_sid()} room={code!r} name={name!r}")
        return
    with _state()['rooms'].session(code) as room:
        join_room(code)
        _deliver(lifecycle.join_player(room, _get_sid(), name, token=_payload(data).get('token')), code)


def handle_host_join(data):
    code = _room_code(data)
    if not code:
        return
    with _state()['rooms'].session(code) as room:
        join_room(code)
        current_app.logger.info(f"[host-join] room={code} sid={_get_sid()}")
        _deliver(lifecycle.host_join(room), code)


def handle_start_from_server(data):
    code = _room_code(data)
    if not code:
        return
    questions = _state()['questions'].load()
    with _state()['rooms'].session(code) as room:
        _deliver(lifecycle.load_round(room, _payload(data).get('round'), questions), code)


def handle_next_from_server(data):
    code = _room_code(data)
    if not code:
        return
    questions = _state()['questions'].load()
    with _state()['rooms'].session(code) as room:
        _deliver(lifecycle.advance_question(room, questions, allow_change=_allow_change()), code)


def handle_start_question(data):
    code = _room_code(data)
    if not code:
        return
    with _state()['rooms'].session(code) as room:
        _deliver(lifecycle.start_manual_question(room, _payload(data), allow_change=_allow_change()), code)


def handle_answer(data):
    code = _room_code(data)
    if not code:
        return
    with _state()['rooms'].session(code) as room:
        _deliver(submit_answer(room, _get_sid(), _payload(data).get('answer'), _state()['rules']), code)


def handle_reveal(data):
    code = _room_code(data)
    if not code:
        return
    with _state()['rooms'].session(code) as room:
        _deliver(lifecycle.reveal(room), code)


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on the given namespace."""
    from quizcine import socketio

    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('join', handle_join, namespace=namespace)
    socketio.on_event('host-join', handle_host_join, namespace=namespace)
    socketio.on_event('start-from-server', handle_start_from_server, namespace=namespace)
    socketio.on_event('next-from-server', handle_next_from_server, namespace=namespace)
    socketio.on_event('start-question', handle_start_question, namespace=namespace)
    socketio.on_event('answer', handle_answer, namespace=namespace)
    socketio.on_event('reveal', handle_reveal, namespace=namespace)
