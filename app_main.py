"""Application entry point for the quiz attempt service.

Usage: python app_main.py [quiz.json ...]
Quiz documents given on the command line are loaded before the server starts.
"""

from __future__ import annotations

from logging import Logger
from pathlib import Path
import sys

from quiz_attempts.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quiz_attempts.core.attempt_manager import AttemptManager
from quiz_attempts.core.quiz_importer import QuizImportError, load_quiz_from_file
from quiz_attempts.server.api_server import serve
from quiz_attempts.utils.logging_config import configure_logging


def _load_quizzes(manager: AttemptManager, paths: list[str], logger: Logger) -> int:
    loaded = 0
    for raw_path in paths:
        path = Path(raw_path)
        try:
            quiz = load_quiz_from_file(path)
            manager.load_quiz(quiz)
        except (OSError, QuizImportError, ValueError) as exc:
            logger.error("Skipping %s: %s", path, exc)
            continue
        logger.info("Loaded quiz %s (%s) from %s", quiz.id, quiz.title, path)
        loaded += 1
    return loaded


def main() -> None:
    """Initialize logging, load quiz documents and run the API server."""
    logger = configure_logging()
    logger.info("Starting quiz attempt service…")

    manager = AttemptManager()
    count = _load_quizzes(manager, sys.argv[1:], logger)
    logger.info("%d quiz document(s) loaded", count)
    logger.info("Serving on http://%s:%d/", DEFAULT_HOST, DEFAULT_PORT)
    serve(manager, host=DEFAULT_HOST, port=DEFAULT_PORT)


if __name__ == "__main__":
    main()
