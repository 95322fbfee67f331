"""
Property import pipeline: fetch -> parse -> upsert (-> optional prune).

One call is one import run. Record-level problems (bad mapping, a failed
upsert) are collected into `errorDetails` and never stop the batch. A feed
that cannot be fetched or parsed fails the whole run with `ImportFailure`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import asyncpg

from properties import repository as properties_repository

from . import feed, parser, repository

SOURCE_REMOTE = "remote"
SOURCE_BODY = "body"

MESSAGE_EMPTY = "No properties found in XML data"
MESSAGE_OK = "Import completed successfully"
MESSAGE_PARTIAL = "Import completed with some errors"

logger = logging.getLogger(__name__)


class ImportFailure(RuntimeError):
    """
    The run could not produce any per-record result.
    """

    def __init__(self, status_code: int, error: str, message: str) -> None:
        super().__init__(f"{error}: {message}")
        self.status_code = status_code
        self.error = error
        self.message = message

    def as_detail(self) -> dict[str, str]:
        return {"error": self.error, "message": self.message}


@dataclass
class ImportResult:
    source: str
    message: str = MESSAGE_OK
    total: int = 0
    results: list[dict[str, Any]] = field(default_factory=list)
    error_details: list[dict[str, str]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def errors(self) -> int:
        return len(self.error_details)

    def as_response(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "source": self.source,
            "total": self.total,
            "processed": self.processed,
            "errors": self.errors,
            "deleted": len(self.deleted),
            "results": self.results,
            "errorDetails": self.error_details,
            "deletedReferences": self.deleted,
            "processingTimeMs": self.duration_ms,
        }


def is_feed_body(body: str | None) -> bool:
    """
    True when a request body carries a feed document rather than a bare trigger.
    """
    return bool(body) and "<list" in body.lower()


async def load_feed(xml_text: str | None) -> str:
    if is_feed_body(xml_text):
        return xml_text or ""
    try:
        return await feed.fetch_feed()
    except feed.FeedFetchError as exc:
        raise ImportFailure(502, "Failed to fetch XML data", str(exc)) from exc


async def upsert_records(elements: list[Any], result: ImportResult) -> set[str]:
    """
    Map and upsert every element, filling `result`.

    Returns the references seen in the feed (whether or not they were stored).
    """
    seen: set[str] = set()
    for element in elements:
        try:
            values = parser.map_record(element)
        except parser.RecordError as exc:
            if exc.reference != parser.UNKNOWN_REFERENCE:
                seen.add(exc.reference)
            result.error_details.append({"reference": exc.reference, "error": exc.message})
            continue

        reference = values["reference"]
        seen.add(reference)
        try:
            row = await properties_repository.upsert_property(values)
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
            logger.warning("import_record_failed reference=%s error=%s", reference, exc)
            result.error_details.append({"reference": reference, "error": str(exc) or type(exc).__name__})
            continue

        result.results.append(
            {
                "reference": reference,
                "action": "created" if row["inserted"] else "updated",
                "id": int(row["id"]),
            }
        )
    return seen


async def prune_missing(elements: list[Any], seen: set[str], result: ImportResult) -> None:
    """
    Delete stored properties the feed no longer lists.

    Skipped when some record had no reference, since that record's row
    cannot be told apart from a removed listing.
    """
    if not seen:
        return
    if any(not parser.record_reference(element) for element in elements):
        logger.warning("import_prune_skipped reason=records_without_reference")
        return
    result.deleted = await properties_repository.delete_properties_not_in(sorted(seen))


async def execute_import(xml_text: str | None, *, prune: bool = False) -> ImportResult:
    result = ImportResult(source=SOURCE_BODY if is_feed_body(xml_text) else SOURCE_REMOTE)

    document = await load_feed(xml_text)
    try:
        elements = parser.parse_feed(document)
    except parser.FeedParseError as exc:
        raise ImportFailure(400, "Failed to parse XML data", str(exc)) from exc

    result.total = len(elements)
    if not elements:
        result.message = MESSAGE_EMPTY
        return result

    seen = await upsert_records(elements, result)
    if prune:
        await prune_missing(elements, seen, result)

    result.message = MESSAGE_OK if result.errors == 0 else MESSAGE_PARTIAL
    return result


async def _finish_failed(run_id: int, *, source: str, message: str) -> None:
    await repository.finish_run(
        run_id,
        source=source,
        total=0,
        processed=0,
        errors=1,
        deleted=0,
        succeeded=False,
        message=message,
    )


async def run_import(
    xml_text: str | None = None,
    *,
    prune: bool = False,
    trigger: str = "manual",
) -> ImportResult:
    """
    Run one import and record it in `import_runs`.

    Callers that need the single-run guarantee go through the scheduler
    (see `scheduler.ImportScheduler.trigger`).
    """
    source = SOURCE_BODY if is_feed_body(xml_text) else SOURCE_REMOTE
    run_id = await repository.start_run(source=source, trigger=trigger)
    started = time.monotonic()
    logger.info("import_started run_id=%s source=%s trigger=%s prune=%s", run_id, source, trigger, prune)

    try:
        result = await execute_import(xml_text, prune=prune)
    except ImportFailure as exc:
        await _finish_failed(run_id, source=source, message=str(exc))
        logger.warning("import_failed run_id=%s error=%s", run_id, exc)
        raise
    except Exception as exc:
        logger.exception("import_crashed run_id=%s", run_id)
        await _finish_failed(run_id, source=source, message=f"Internal error: {exc}")
        raise

    result.duration_ms = int((time.monotonic() - started) * 1000)
    await repository.finish_run(
        run_id,
        source=source,
        total=result.total,
        processed=result.processed,
        errors=result.errors,
        deleted=len(result.deleted),
        succeeded=result.errors == 0,
        message=result.message,
    )
    logger.info(
        "import_finished run_id=%s source=%s total=%s processed=%s errors=%s deleted=%s duration_ms=%s",
        run_id,
        source,
        result.total,
        result.processed,
        result.errors,
        len(result.deleted),
        result.duration_ms,
    )
    return result
