"""Render an inventory collection as an HTML report and a CSV export.

The HTML page comes from one fixed Jinja2 template. The collection and the
chart counts reach the page script through a single JSON payload; the filter
and chart code in the template never change per call.
"""

import contextlib
import csv
import datetime
import functools
import io
import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, PackageLoader, select_autoescape

from .config import TIMESTAMP_FORMAT
from .errors import RenderError
from .models import FIELD_NAMES, InventoryRecord, format_value

logger = logging.getLogger(__name__)

TEMPLATE = "report.html.j2"
TABLE_ID = "inventoryTable"


@dataclass(frozen=True)
class RenderResult:
    html_path: Path
    csv_path: Path | None


@functools.lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=PackageLoader("hostinventory", "templates"),
        autoescape=select_autoescape(["html", "j2"]),
        keep_trailing_newline=True,
    )


def chart_data(collection: Sequence[InventoryRecord]) -> dict:
    """Counts behind the two pie charts, over the whole collection."""
    total = len(collection)
    sql = sum(1 for r in collection if r.sql_database_engine_status.is_found)
    virtual = sum(1 for r in collection if r.is_virtual)
    return {
        "sql": {"labels": ["SQL Installed", "No SQL"], "values": [sql, total - sql]},
        "virtual": {"labels": ["Virtual", "Physical"], "values": [virtual, total - virtual]},
    }


def build_csv(collection: Sequence[InventoryRecord]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(FIELD_NAMES)
    for record in collection:
        writer.writerow([format_value(v) for v in record.as_row()])
    return buf.getvalue()


def build_html(
    collection: Sequence[InventoryRecord],
    title: str,
    generated: datetime.datetime | None = None,
) -> str:
    generated = generated or datetime.datetime.now()
    rows = [[format_value(v) for v in record.as_row()] for record in collection]
    payload = {
        "records": [record.as_dict() for record in collection],
        "charts": chart_data(collection),
    }
    template = _environment().get_template(TEMPLATE)
    return template.render(
        title=title,
        generated=generated.strftime(TIMESTAMP_FORMAT),
        headers=FIELD_NAMES,
        rows=rows,
        table_id=TABLE_ID,
        payload=payload,
    )


def _discard(paths) -> None:
    for p in paths:
        with contextlib.suppress(OSError):
            p.unlink(missing_ok=True)


def _write_all(artifacts: list[tuple[Path, str]], remove: Sequence[Path] = ()) -> None:
    """Write every artifact and delete every path in *remove*, or change nothing.

    Existing targets are moved aside to ``.<name>.bak`` first and moved back
    if a later step fails.
    """
    for path in [p for p, _ in artifacts] + list(remove):
        if path.is_dir():
            raise RenderError(path, "is a directory")

    staged: list[tuple[Path | None, Path]] = []
    try:
        for path, text in artifacts:
            tmp = path.with_name(f".{path.name}.tmp")
            staged.append((tmp, path))
            with open(tmp, "w", encoding="utf-8", newline="") as fh:
                fh.write(text)
    except OSError as exc:
        _discard(tmp for tmp, _ in staged)
        raise RenderError(exc.filename or artifacts[0][0], exc.strerror or str(exc)) from exc
    staged += [(None, path) for path in remove]

    moved: list[tuple[Path, Path | None]] = []
    try:
        for tmp, path in staged:
            backup = None
            if path.exists():
                backup = path.with_name(f".{path.name}.bak")
                os.replace(path, backup)
            moved.append((path, backup))
            if tmp is not None:
                os.replace(tmp, path)
    except OSError as exc:
        for target, backup in reversed(moved):
            with contextlib.suppress(OSError):
                target.unlink(missing_ok=True)
                if backup is not None:
                    os.replace(backup, target)
        _discard(tmp for tmp, _ in staged if tmp is not None)
        raise RenderError(exc.filename or path, exc.strerror or str(exc)) from exc

    _discard(backup for _, backup in moved if backup is not None)


def render(
    collection: Sequence[InventoryRecord],
    title: str,
    html_path: str | os.PathLike,
    csv_path: str | os.PathLike,
    *,
    generated: datetime.datetime | None = None,
) -> RenderResult:
    """Write the HTML report and, for a non-empty collection, the CSV export.

    An empty collection yields a placeholder page, and a CSV left at
    *csv_path* by an earlier run is deleted. Raises :class:`RenderError` if a
    destination cannot be written; in that case neither file is touched.
    """
    html_path = Path(html_path)
    csv_path = Path(csv_path)
    artifacts = [(html_path, build_html(collection, title, generated))]
    remove: list[Path] = []
    if collection:
        artifacts.append((csv_path, build_csv(collection)))
    else:
        remove.append(csv_path)

    _write_all(artifacts, remove)
    logger.info("%s: wrote %d records to %s", title, len(collection), html_path)
    return RenderResult(html_path, csv_path if collection else None)
