"""Question content normalization.

Question banks are authored out-of-band, usually exported from a
spreadsheet, so column names drift between exports (English or French
headers, ``Image`` vs ``image_url``, numbered choice columns, ...). Every
canonical field is resolved from an ordered tuple of accessors in
``FIELD_SOURCES``; the first accessor yielding a non-empty value wins.
Supporting a new export format means appending an accessor, not adding a
branch.

Nothing in this module raises on bad input: malformed records degrade to
defaults so a live session never crashes over content.
"""

import math
import re
import unicodedata
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence
from urllib.parse import urlsplit

from quizcine.models import (
    DEFAULT_DURATION,
    DEFAULT_POINTS,
    MAX_CHOICES,
    Question,
    QuestionKind,
)

DRIVE_DOWNLOAD_URL = 'https://drive.google.com/uc?id={file_id}'
_DRIVE_DIRECT_MARKER = '/uc?id='
_DRIVE_HOSTS = ('drive.google.com', 'docs.google.com')
_DRIVE_PATH_ID = re.compile(r'/file/d/([a-zA-Z0-9_-]+)')
_DRIVE_QUERY_ID = re.compile(r'[?&]id=([a-zA-Z0-9_-]+)')

_WHITESPACE = re.compile(r'\s+')
_KEY_NOISE = re.compile(r'[\s_\-]+')
_CHOICE_SPLIT = re.compile(r'[|;\n]')

Accessor = Callable[[Mapping[str, Any]], Any]


def normalize_key(value: Any) -> str:
    """Canonical comparison form: trimmed, lower-cased, accents stripped."""
    if value is None:
        return ''
    text = unicodedata.normalize('NFD', str(value).strip().lower())
    text = ''.join(ch for ch in text if not unicodedata.combining(ch))
    return _WHITESPACE.sub(' ', text)


def _column_key(name: Any) -> str:
    return _KEY_NOISE.sub('', normalize_key(name))


def _is_drive_host(url: str) -> bool:
    url = url.strip()
    if '://' not in url:
        url = '//' + url
    try:
        host = (urlsplit(url).hostname or '').lower()
    except ValueError:
        return False
    return any(host == h or host.endswith('.' + h) for h in _DRIVE_HOSTS)


def resolve_media_reference(raw: Any) -> str:
    """Rewrite a Google Drive sharing link to its direct-download form.

    Links already in ``/uc?id=`` form, links on other hosts, and Drive links
    without a recognisable file id are returned unchanged.
    """
    if not raw or not isinstance(raw, str):
        return ''
    if _DRIVE_DIRECT_MARKER in raw:
        return raw
    if not _is_drive_host(raw):
        return raw
    match = _DRIVE_PATH_ID.search(raw) or _DRIVE_QUERY_ID.search(raw)
    if match:
        return DRIVE_DOWNLOAD_URL.format(file_id=match.group(1))
    return raw


# ---- accessors ----

def _lookup(record: Mapping[str, Any], name: str) -> Any:
    if name in record:
        return record[name]
    wanted = _column_key(name)
    for key, value in record.items():
        if _column_key(key) == wanted:
            return value
    return None


def field(name: str) -> Accessor:
    """Accessor reading one column, tolerant to header case and accents."""
    return lambda record: _lookup(record, name)


def text_field(name: str) -> Accessor:
    """Like ``field`` but only yields strings (``correct`` may hold a choice index)."""
    def read(record):
        value = _lookup(record, name)
        return value if isinstance(value, str) else None
    return read


def columns(*names: str) -> Accessor:
    """Accessor gathering several columns (``choice1``..``choice4``) into a list."""
    def read(record):
        values = [_lookup(record, n) for n in names]
        return [v for v in values if not _is_empty(v)]
    return read


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return not any(not _is_empty(v) for v in value)
    if isinstance(value, float):
        return math.isnan(value)
    return False


FIELD_SOURCES = {
    'round': (
        field('round'), field('roundName'), field('manche'), field('category'),
        field('categorie'), field('theme'),
    ),
    'text': (
        field('question'), field('text'), field('prompt'), field('enonce'),
        field('intitule'), field('questionText'),
    ),
    'image': (
        field('image'), field('imageUrl'), field('img'), field('media'),
        field('photo'), field('questionImage'),
    ),
    'answer_image': (
        field('answerImage'), field('imageReponse'), field('reponseImage'),
        field('answerMedia'), field('solutionImage'),
    ),
    'type': (
        field('type'), field('kind'), field('format'), field('questionType'),
    ),
    'choices': (
        field('choices'), field('options'), field('propositions'), field('choix'),
        columns('choice1', 'choice2', 'choice3', 'choice4'),
        columns('option1', 'option2', 'option3', 'option4'),
        columns('A', 'B', 'C', 'D'),
    ),
    'answer': (
        field('answer'), field('reponse'), field('correctAnswer'), text_field('correct'),
        field('bonneReponse'), field('solution'),
    ),
    'points': (
        field('points'), field('pts'), field('score'), field('value'), field('valeur'),
    ),
    'duration': (
        field('duration'), field('duree'), field('time'), field('timer'),
        field('seconds'), field('secondes'),
    ),
}


def first_present(record: Mapping[str, Any], accessors: Iterable[Accessor]) -> Any:
    """Evaluate accessors in order and return the first non-empty value."""
    for accessor in accessors:
        value = accessor(record)
        if not _is_empty(value):
            return value
    return None


# ---- field resolvers ----

MULTIPLE_CHOICE_TAGS = frozenset({
    'mcq', 'qcm', 'multiple', 'multiple choice', 'multiple-choice',
    'multiplechoice', 'choix multiple',
})
OPEN_TEXT_TAGS = frozenset({
    'open', 'open text', 'open-text', 'opentext', 'ouverte',
    'question ouverte', 'free text',
})


def _as_text(value: Any) -> str:
    if _is_empty(value):
        return ''
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def resolve_round(record: Mapping[str, Any]) -> str:
    return _as_text(first_present(record, FIELD_SOURCES['round']))


def safe_prompt(value: Any) -> str:
    """Drop a prompt that is really a type tag leaked from the type column."""
    text = _as_text(value)
    key = normalize_key(text)
    if key in MULTIPLE_CHOICE_TAGS or key in OPEN_TEXT_TAGS:
        return ''
    return text


def resolve_text(record: Mapping[str, Any]) -> str:
    return safe_prompt(first_present(record, FIELD_SOURCES['text']))


def resolve_image(record: Mapping[str, Any]) -> str:
    return resolve_media_reference(_as_text(first_present(record, FIELD_SOURCES['image'])))


def resolve_answer_image(record: Mapping[str, Any]) -> str:
    return resolve_media_reference(_as_text(first_present(record, FIELD_SOURCES['answer_image'])))


def clean_choices(value: Any) -> List[str]:
    if _is_empty(value):
        return []
    if isinstance(value, str):
        items: Sequence[Any] = _CHOICE_SPLIT.split(value)
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    cleaned = [_as_text(item) for item in items if not isinstance(item, (dict, list, tuple))]
    return [c for c in cleaned if c][:MAX_CHOICES]


def resolve_choices(record: Mapping[str, Any]) -> List[str]:
    return clean_choices(first_present(record, FIELD_SOURCES['choices']))


def kind_from_tag(tag: Any, choices: Sequence[str]) -> QuestionKind:
    key = normalize_key(tag)
    if key in MULTIPLE_CHOICE_TAGS:
        return QuestionKind.MULTIPLE_CHOICE
    if key in OPEN_TEXT_TAGS:
        return QuestionKind.OPEN_TEXT
    return QuestionKind.MULTIPLE_CHOICE if choices else QuestionKind.OPEN_TEXT


def resolve_type(record: Mapping[str, Any], choices: Optional[Sequence[str]] = None) -> QuestionKind:
    if choices is None:
        choices = resolve_choices(record)
    return kind_from_tag(first_present(record, FIELD_SOURCES['type']), choices)


def resolve_answer(record: Mapping[str, Any]) -> str:
    return _as_text(first_present(record, FIELD_SOURCES['answer']))


def positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool) or _is_empty(value):
        return default
    try:
        number = float(str(value).strip().replace(',', '.')) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number <= 0:
        return default
    return max(1, int(number))


def resolve_points(record: Mapping[str, Any]) -> int:
    return positive_int(first_present(record, FIELD_SOURCES['points']), DEFAULT_POINTS)


def resolve_duration(record: Mapping[str, Any]) -> int:
    return positive_int(first_present(record, FIELD_SOURCES['duration']), DEFAULT_DURATION)


def normalize_question(record: Any) -> Question:
    """Build a canonical ``Question`` from a raw record of any shape."""
    if not isinstance(record, Mapping):
        return Question()
    choices = resolve_choices(record)
    return Question(
        round_name=resolve_round(record),
        kind=resolve_type(record, choices),
        prompt=resolve_text(record),
        prompt_media=resolve_image(record),
        choices=tuple(choices),
        answer=resolve_answer(record),
        answer_media=resolve_answer_image(record),
        points=resolve_points(record),
        duration=resolve_duration(record),
    )


def normalize_questions(records: Iterable[Any]) -> List[Question]:
    return [normalize_question(r) for r in records]


def filter_round(questions: Iterable[Question], round_name: Any) -> List[Question]:
    """Questions of one round, matched ignoring case, accents and padding."""
    wanted = normalize_key(round_name)
    return [q for q in questions if normalize_key(q.round_name) == wanted]
