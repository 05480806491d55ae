import json
import os
import sys
import pytest

# Ensure the project root (containing the `quizcine` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from quizcine import create_app, socketio


QUESTION_BANK = {
    'questions': [
        {
            'round': 'Classics',
            'type': 'mcq',
            'question': 'Who directed Casablanca?',
            'image': 'https://drive.google.com/file/d/abc123/view',
            'choices': ['Michael Curtiz', 'Billy Wilder', '', 'Orson Welles'],
            'answer': 'Michael Curtiz',
            'points': 10,
            'duration': 30,
        },
        {
            'round': 'classics ',
            'type': 'open',
            'question': 'Year of Citizen Kane?',
            'answer': '1941',
            'answerImage': 'https://drive.google.com/open?id=kane_41',
            'points': 10,
        },
        {
            'Manche': 'Général',
            'Question': 'Palme d\'or 1960 ?',
            'Réponse': 'La Dolce Vita',
        },
    ]
}


def make_config(questions_path):
    class TestConfig:
        TESTING = True
        SECRET_KEY = 'test-secret'
        PUBLIC_DIR = os.path.dirname(questions_path)
        QUESTIONS_PATH = questions_path
        CORS_ORIGINS = '*'
        SOCKETIO_NAMESPACE = '/'
        ROOM_IDLE_TTL_SEC = 0
        QUICK_BONUS = 5
        STREAK_EVERY = 3
        STREAK_BONUS = 5
        ONE_ANSWER_PER_QUESTION = False

    return TestConfig


@pytest.fixture()
def questions_file(tmp_path):
    path = tmp_path / 'questions.json'
    path.write_text(json.dumps(QUESTION_BANK), encoding='utf-8')
    return path


@pytest.fixture()
def flask_app(questions_file):
    application = create_app(make_config(str(questions_file)))
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients; all are disconnected on teardown."""
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            test_client.disconnect()
        except Exception:
            pass

