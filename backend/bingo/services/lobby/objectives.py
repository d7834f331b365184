import json
import logging
from typing import Iterable, List

from .board import Objective

logger = logging.getLogger(__name__)


def parse_objectives(raw: Iterable) -> List[Objective]:
    objectives = []
    for entry in raw or []:
        if not isinstance(entry, dict):
            continue
        name = entry.get('name')
        if not isinstance(name, str) or not name.strip():
            continue
        objectives.append(Objective(name.strip(), str(entry.get('description') or '')))
    return objectives


def load_objective_pool(path) -> List[Objective]:
    """Read the objective catalog from a JSON array of ``{name, description}``.

    A missing or malformed file yields an empty pool; lobby creation then
    fails with InsufficientObjectives instead of the server refusing to start.
    """
    try:
        with open(path, encoding='utf-8') as fh:
            raw = json.load(fh)
    except (OSError, ValueError) as exc:
        logger.error("could not read objectives from %s: %s", path, exc)
        return []
    if not isinstance(raw, list) or not raw:
        logger.warning("%s is empty or not a JSON array", path)
        return []
    objectives = parse_objectives(raw)
    logger.info("loaded %d objectives from %s", len(objectives), path)
    return objectives
