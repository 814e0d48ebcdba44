"""Load recorded executor event streams from files."""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter, ValidationError

from bug0.studio_reporter.models.events import ReporterEvent

_EVENTS = TypeAdapter(list[ReporterEvent])


def _read_raw_events(event_file: Path) -> Any:
    text = event_file.read_text()
    suffix = event_file.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {event_file}: {e}") from e

    try:
        if suffix == ".jsonl":
            return [json.loads(line) for line in text.splitlines() if line.strip()]
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {event_file}: {e}") from e


def load_events(event_file: Path) -> list[ReporterEvent]:
    """Load an event stream in executor order.

    Args:
        event_file: ``.jsonl`` file with one event per line, ``.json`` file
            holding an array of events, or ``.yaml``/``.yml`` list of events

    Returns:
        Parsed events

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty, unparsable or doesn't match the schema

    """
    if not event_file.exists():
        raise FileNotFoundError(f"Event file not found: {event_file}")

    data = _read_raw_events(event_file)
    if not data:
        raise ValueError(f"Empty event file: {event_file}")

    try:
        return _EVENTS.validate_python(data)
    except ValidationError as e:
        raise ValueError(f"Invalid event schema in {event_file}: {e}") from e
