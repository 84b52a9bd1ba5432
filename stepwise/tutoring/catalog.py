#!/usr/bin/env python3
"""
Exercise catalog.
Loads the ordered curriculum from an `info.json` index and serves the raw
exercise, template and solution text. Read-only to the rest of the app.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from loguru import logger

from ..errors import CatalogError
from .state import ExerciseDescriptor, RunMode


INDEX_FILE = 'info.json'

DEFAULT_FINAL_MESSAGE = "All exercises complete. Well done!"


def _exercise_id(name: str, path: str) -> str:
    """Stable identifier: the explicit name, else the file stem"""
    if name:
        return name
    return os.path.splitext(os.path.basename(path))[0]


@dataclass
class ExerciseCatalog:
    """Ordered list of exercises plus the message shown when all are done"""
    root: str
    exercises: List[ExerciseDescriptor] = field(default_factory=list)
    final_message: str = DEFAULT_FINAL_MESSAGE

    @classmethod
    def from_directory(cls, root: str) -> 'ExerciseCatalog':
        """Load `root/info.json`; raises CatalogError if it is missing or malformed"""
        root = os.path.abspath(root)
        index_path = os.path.join(root, INDEX_FILE)
        try:
            with open(index_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise CatalogError(f"No {INDEX_FILE} found in {root}")
        except (json.JSONDecodeError, OSError) as e:
            raise CatalogError(f"Could not read {index_path}: {e}")

        return cls.from_dict(root, data)

    @classmethod
    def from_dict(cls, root: str, data: Dict) -> 'ExerciseCatalog':
        """Build a catalog from an already-parsed index"""
        entries = data.get('exercises') if isinstance(data, dict) else None
        if not isinstance(entries, list) or not entries:
            raise CatalogError("Index must contain a non-empty 'exercises' list")

        exercises = []
        seen = set()
        for ordinal, entry in enumerate(entries):
            if not isinstance(entry, dict) or not entry.get('path'):
                raise CatalogError(f"Exercise #{ordinal + 1} has no 'path'")

            path = entry['path']
            exercise_id = _exercise_id(entry.get('name', ''), path)
            if exercise_id in seen:
                raise CatalogError(f"Duplicate exercise '{exercise_id}'")
            seen.add(exercise_id)

            try:
                mode = RunMode(entry.get('mode', RunMode.CHECK.value))
            except ValueError:
                raise CatalogError(f"Exercise '{exercise_id}' has unknown mode '{entry.get('mode')}'")

            exercises.append(ExerciseDescriptor(
                id=exercise_id,
                path=os.path.join(root, path),
                display_name=entry.get('display_name') or os.path.basename(path),
                ordinal=ordinal,
                hint=entry.get('hint', '').strip(),
                mode=mode,
                template_path=os.path.join(root, entry['template']) if entry.get('template') else None,
                solution_path=os.path.join(root, entry['solution']) if entry.get('solution') else None,
            ))

        logger.debug("Loaded {} exercises from {}", len(exercises), root)
        return cls(
            root=root,
            exercises=exercises,
            final_message=data.get('final_message') or DEFAULT_FINAL_MESSAGE,
        )

    def __len__(self) -> int:
        return len(self.exercises)

    def __iter__(self) -> Iterator[ExerciseDescriptor]:
        return iter(self.exercises)

    def __getitem__(self, index: int) -> ExerciseDescriptor:
        return self.exercises[index]

    def index_of(self, exercise_id: str) -> Optional[int]:
        for i, exercise in enumerate(self.exercises):
            if exercise.id == exercise_id:
                return i
        return None

    def read_exercise(self, exercise: ExerciseDescriptor) -> str:
        """Current on-disk text of the working file"""
        with open(exercise.path, 'r', encoding='utf-8') as f:
            return f.read()

    def read_template(self, exercise: ExerciseDescriptor) -> Optional[str]:
        """Pristine exercise text, if the catalog ships one"""
        return _read_optional(exercise.template_path)

    def read_solution(self, exercise: ExerciseDescriptor) -> Optional[str]:
        return _read_optional(exercise.solution_path)


def _read_optional(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except OSError as e:
        logger.warning("Could not read {}: {}", path, e)
        return None
