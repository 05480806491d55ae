import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    PORT = int(os.environ.get('PORT', '10000'))
    # Static front-end and the question bank it ships with
    PUBLIC_DIR = os.environ.get('PUBLIC_DIR') or os.path.join(BASE_DIR, 'public')
    QUESTIONS_PATH = os.environ.get('QUESTIONS_PATH') or os.path.join(PUBLIC_DIR, 'questions.json')
    # Comma-separated list, or '*' for any origin
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Idle room eviction (seconds). 0 keeps rooms for the process lifetime.
    ROOM_IDLE_TTL_SEC = int(os.environ.get('ROOM_IDLE_TTL_SEC', '0'))
    ROOM_REAPER_INTERVAL_SEC = int(os.environ.get('ROOM_REAPER_INTERVAL_SEC', '60'))
    # Scoring
    QUICK_BONUS = int(os.environ.get('QUICK_BONUS', '5'))
    STREAK_EVERY = int(os.environ.get('STREAK_EVERY', '3'))
    STREAK_BONUS = int(os.environ.get('STREAK_BONUS', '5'))
    # 1 ignores a second answer from the same player to the same question
    ONE_ANSWER_PER_QUESTION = os.environ.get('ONE_ANSWER_PER_QUESTION', '0') == '1'
