"""Import flashcards from JSON, YAML or plain-text files."""
import json
import logging
from pathlib import Path

import yaml

from flashdeck.errors import ImportFormatError
from flashdeck.flashcards import create_flashcards_bulk
from flashdeck.models import BulkCreateFailure, BulkCreateResult, ParsedFlashcard
from flashdeck.sets import get_set

logger = logging.getLogger(__name__)

MAX_SIDE_LENGTH = 1000
TEXT_SEPARATORS = ("\t", "::")

SUFFIX_FORMATS = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".txt": "text",
    ".tsv": "text",
}


def _check_item(index: int, item) -> ParsedFlashcard:
    if not isinstance(item, dict):
        return ParsedFlashcard(front="", back="", error=f"Item {index + 1}: Must be an object")
    front, back, starred = item.get("front"), item.get("back"), item.get("starred", False)
    error = None
    if not isinstance(front, str):
        error = "Missing or invalid 'front' field"
    elif not isinstance(back, str):
        error = "Missing or invalid 'back' field"
    elif not front.strip():
        error = "Front side cannot be empty"
    elif not back.strip():
        error = "Back side cannot be empty"
    elif len(front) > MAX_SIDE_LENGTH:
        error = f"Front side exceeds {MAX_SIDE_LENGTH} characters"
    elif len(back) > MAX_SIDE_LENGTH:
        error = f"Back side exceeds {MAX_SIDE_LENGTH} characters"
    elif not isinstance(starred, bool):
        error = "Invalid 'starred' field (must be boolean)"
    return ParsedFlashcard(
        front=str(front or ""),
        back=str(back or ""),
        starred=starred if isinstance(starred, bool) else False,
        error=error,
    )


def _parse_text(text: str) -> list[ParsedFlashcard]:
    cards = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        for sep in TEXT_SEPARATORS:
            if sep in line:
                front, back = line.split(sep, 1)
                cards.append(_check_item(len(cards), {"front": front.strip(), "back": back.strip()}))
                break
        else:
            cards.append(ParsedFlashcard(
                front=line.strip(), back="",
                error=f"Line {lineno}: expected 'front<TAB>back' or 'front :: back'",
            ))
    return cards


def parse_flashcards(text: str, fmt: str = "json") -> list[ParsedFlashcard]:
    """Parse cards from text. Per-card problems are reported on each item."""
    if fmt == "text":
        return _parse_text(text)
    try:
        if fmt == "json":
            data = json.loads(text)
        elif fmt == "yaml":
            data = yaml.safe_load(text)
        else:
            raise ImportFormatError(f"Unsupported format: {fmt}")
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ImportFormatError(f"Invalid {fmt.upper()}: {exc}") from exc
    if isinstance(data, dict) and isinstance(data.get("flashcards"), list):
        data = data["flashcards"]
    if not isinstance(data, list):
        raise ImportFormatError(f"{fmt.upper()} must be an array of flashcard objects")
    return [_check_item(i, item) for i, item in enumerate(data)]


def read_file_cards(file_path: str) -> list[ParsedFlashcard]:
    path = Path(file_path)
    fmt = SUFFIX_FORMATS.get(path.suffix.lower(), "text")
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ImportFormatError(f"{path.name} is not valid UTF-8") from exc
    return parse_flashcards(text, fmt)


def import_file(db_path: str, user_id: int, set_id: int, file_path: str) -> BulkCreateResult:
    """Import a file's cards into a set. Invalid items land in result.failed."""
    get_set(db_path, user_id, set_id)
    parsed = read_file_cards(file_path)
    if not parsed:
        raise ImportFormatError(f"No flashcards found in {Path(file_path).name}")
    valid = [(i, c) for i, c in enumerate(parsed) if c.error is None]
    result = BulkCreateResult()
    if valid:
        result = create_flashcards_bulk(
            db_path, user_id, set_id,
            [{"front": c.front, "back": c.back, "starred": c.starred} for _, c in valid],
        )
        # Map batch positions back to positions in the file
        for failure in result.failed:
            failure.index = valid[failure.index][0]
    for index, card in enumerate(parsed):
        if card.error is not None:
            result.failed.append(BulkCreateFailure(
                index=index,
                card={"front": card.front, "back": card.back, "starred": card.starred},
                error=card.error,
            ))
    result.failed.sort(key=lambda f: f.index)
    logger.info("Imported %s into set %s", Path(file_path).name, set_id)
    return result
