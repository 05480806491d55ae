import json
import logging
from collections import OrderedDict
from typing import List

from quizcine.models import Question
from .normalizer import normalize_key, normalize_questions

logger = logging.getLogger(__name__)


class QuestionRepository:
    """Question bank backed by a JSON document on disk.

    The file is re-read on every ``load()`` so hosts can edit the bank
    between rounds without restarting the server.
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> List[Question]:
        try:
            with open(self.path, encoding='utf-8') as fh:
                document = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.error(f"[questions-load-failed] path={self.path} error={exc}")
            return []

        if isinstance(document, dict) and isinstance(document.get('questions'), list):
            records = document['questions']
        elif isinstance(document, list):
            records = document
        else:
            logger.error(f"[questions-load-failed] path={self.path} error=expected a list or a 'questions' list")
            return []
        return normalize_questions(records)

    def rounds(self) -> 'OrderedDict[str, int]':
        """Question count per round, grouping names the way round selection matches them."""
        counts: 'OrderedDict[str, int]' = OrderedDict()
        labels = {}
        for question in self.load():
            label = labels.setdefault(normalize_key(question.round_name), question.round_name)
            counts[label] = counts.get(label, 0) + 1
        return counts
