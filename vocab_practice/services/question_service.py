# vocab_practice/services/question_service.py
import os
from typing import Dict, List, Optional

from pydantic import ValidationError

from vocab_practice.models.question import PracticeSet
from vocab_practice.utils.config import settings
from vocab_practice.utils.logger import logger


class QuestionService:
    def __init__(self):
        self.practice_sets: Dict[str, PracticeSet] = {}
        logger.info("QuestionService initialized (data loading deferred).")

    def load_practice_sets(self, directory: Optional[str] = None) -> int:
        """Loads every *.json practice set in `directory`. Returns how many were loaded."""
        directory = directory if directory is not None else settings.practice_sets_dir
        self.practice_sets = {}
        try:
            filenames = sorted(name for name in os.listdir(directory) if name.endswith(".json"))
        except FileNotFoundError:
            logger.error(f"Practice set directory not found at: {directory}")
            return 0

        for filename in filenames:
            path = os.path.join(directory, filename)
            practice_set = self.load_practice_set_file(path)
            if practice_set is None:
                continue
            if practice_set.id in self.practice_sets:
                logger.warning(f"Duplicate practice set id '{practice_set.id}' in {path}; keeping the later one.")
            self.practice_sets[practice_set.id] = practice_set

        logger.info(f"Loaded {len(self.practice_sets)} practice set(s) from {directory}.")
        if not self.practice_sets:
            logger.warning(f"No practice sets loaded from {directory}. Check the file format and content.")
        return len(self.practice_sets)

    def load_practice_set_file(self, path: str) -> Optional[PracticeSet]:
        try:
            with open(path, mode="r", encoding="utf-8") as f:
                return PracticeSet.model_validate_json(f.read())
        except ValidationError as ve:
            logger.error(f"Skipping {path} due to {ve.error_count()} validation error(s): {ve}")
        except OSError as e:
            logger.error(f"Could not read practice set file {path}: {e}")
        return None

    def add_practice_set(self, practice_set: PracticeSet) -> None:
        self.practice_sets[practice_set.id] = practice_set

    def get_all_practice_sets(self) -> List[PracticeSet]:
        return list(self.practice_sets.values())

    def get_practice_set(self, practice_set_id: str) -> Optional[PracticeSet]:
        return self.practice_sets.get(practice_set_id)

    def get_practice_sets_for_wordlist(self, wordlist_id: str) -> List[PracticeSet]:
        return [ps for ps in self.practice_sets.values() if ps.wordlist_id == wordlist_id]


question_service = QuestionService()
