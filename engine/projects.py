"""
Named projects saved as JSON files, one file per project.

Record shape:
    {"id", "name", "updatedAt", "charts", "activeChartId", "filters"}

Older records held a single chart at the top level
(encodings / markType / chartTitle / colorScheme); `migrate_project`
turns those into a one-chart record on load.
"""

import json
import logging
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path

from engine.constants import DEFAULT_COLOR_SCHEME
from engine.exceptions import ProjectNotFoundError, ProjectStoreError
from engine.store import new_chart

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


def _now():
    return datetime.now(timezone.utc).isoformat()


def project_from_state(state, name, project_id=None):
    return {
        "id": project_id or uuid.uuid4().hex,
        "name": name,
        "updatedAt": _now(),
        "charts": state["charts"],
        "activeChartId": state["activeChartId"],
        "filters": state["filters"],
    }


def migrate_project(record):
    project = dict(record)

    if not project.get("charts"):
        chart = new_chart(name="Chart 1")
        chart["encodings"] = project.pop("encodings", None) or {}
        chart["markType"] = project.pop("markType", None) or "auto"
        chart["chartTitle"] = project.pop("chartTitle", None)
        chart["colorScheme"] = project.pop("colorScheme", None) or DEFAULT_COLOR_SCHEME
        project["charts"] = [chart]
        logger.info("Migrated legacy single-chart project '%s'", project.get("id"))

    chart_ids = [c["id"] for c in project["charts"]]
    if project.get("activeChartId") not in chart_ids:
        project["activeChartId"] = chart_ids[0]

    project.setdefault("filters", [])
    project.setdefault("name", "Untitled")
    project.setdefault("updatedAt", _now())
    return project


# ---------------------------------------------------------
# File-backed store
# ---------------------------------------------------------
class ProjectStore:
    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, project_id):
        if not project_id or not _SAFE_ID.match(str(project_id)):
            raise ProjectStoreError(f"Invalid project id: {project_id!r}")
        return self.directory / f"{project_id}.json"

    def _read(self, path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ProjectStoreError(f"Project file {path.name} is corrupt: {e}") from e

    def save(self, project):
        path = self._path(project.get("id"))
        self.directory.mkdir(parents=True, exist_ok=True)

        record = {**project, "updatedAt": _now()}
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2, default=str)
        tmp_path.replace(path)

        logger.info("Saved project '%s' (%s)", record.get("name"), record["id"])
        return record

    def load(self, project_id):
        path = self._path(project_id)
        if not path.exists():
            raise ProjectNotFoundError(project_id)
        return migrate_project(self._read(path))

    def list(self):
        if not self.directory.exists():
            return []

        projects = []
        for path in self.directory.glob("*.json"):
            try:
                record = migrate_project(self._read(path))
            except ProjectStoreError as e:
                logger.warning("Skipping unreadable project: %s", e)
                continue
            projects.append({
                "id": record.get("id", path.stem),
                "name": record["name"],
                "updatedAt": record["updatedAt"],
                "chartCount": len(record["charts"]),
            })

        return sorted(projects, key=lambda p: p["updatedAt"], reverse=True)

    def delete(self, project_id):
        path = self._path(project_id)
        if not path.exists():
            raise ProjectNotFoundError(project_id)
        path.unlink()
        logger.info("Deleted project %s", project_id)
