from typing import Iterable, List, Optional
from fastapi import APIRouter, Depends, HTTPException

from audit_engine.api.deps import get_history_store, get_ignored_store
from audit_engine.core.diff import compare
from audit_engine.core.errors import PersistenceWriteFailure
from audit_engine.core.storage import HistoryStore, IgnoredFindingsStore
from audit_engine.core.timeutil import format_relative_time, now_ms
from audit_engine.models.schemas import (
    Comparison,
    CompareRequest,
    HistoryEntry,
    HistoryItem,
    IgnoredFinding,
    IgnoreRequest,
    SaveRequest,
)

router = APIRouter(tags=["history"])


def _write_failed(e: PersistenceWriteFailure) -> HTTPException:
    return HTTPException(status_code=503, detail=f"History was not updated: {e}")


def _with_age(entries: Iterable[HistoryEntry]) -> List[HistoryItem]:
    now = now_ms()
    return [
        HistoryItem(**dict(e), captured=format_relative_time(e.timestamp, now=now))
        for e in entries
    ]


# ---------- History

@router.get("/history", response_model=List[HistoryItem])
async def history_for_origin(url: str, store: HistoryStore = Depends(get_history_store)):
    return _with_age(await store.list_for_origin(url))


@router.get("/history/all", response_model=List[HistoryItem])
async def history_all(store: HistoryStore = Depends(get_history_store)):
    return _with_age(await store.list_all())


@router.get("/history/previous", response_model=Optional[HistoryEntry])
async def history_previous(
    url: str,
    exclude_timestamp: Optional[int] = None,
    store: HistoryStore = Depends(get_history_store),
):
    return await store.previous(url, exclude_timestamp)


@router.get("/history/compare", response_model=Comparison)
async def history_compare(url: str, store: HistoryStore = Depends(get_history_store)):
    """Latest saved scan for the origin against the one before it."""
    entries = await store.list_for_origin(url)
    if len(entries) < 2:
        raise HTTPException(status_code=404, detail="Need at least two saved scans to compare")
    return compare(entries[0], entries[1])


@router.post("/history", response_model=HistoryEntry)
async def history_save(body: SaveRequest, store: HistoryStore = Depends(get_history_store)):
    try:
        return await store.save(body.result, body.audit_types)
    except PersistenceWriteFailure as e:
        raise _write_failed(e)


@router.delete("/history/all", status_code=204)
async def history_clear_all(store: HistoryStore = Depends(get_history_store)):
    try:
        await store.clear_all()
    except PersistenceWriteFailure as e:
        raise _write_failed(e)


@router.delete("/history/{entry_id}", status_code=204)
async def history_delete(entry_id: str, store: HistoryStore = Depends(get_history_store)):
    try:
        await store.delete_by_id(entry_id)
    except PersistenceWriteFailure as e:
        raise _write_failed(e)


@router.delete("/history", status_code=204)
async def history_clear_origin(url: str, store: HistoryStore = Depends(get_history_store)):
    try:
        await store.clear_origin(url)
    except PersistenceWriteFailure as e:
        raise _write_failed(e)


@router.post("/compare", response_model=Comparison)
def compare_scans(body: CompareRequest):
    return compare(body.current, body.previous)


# ---------- Ignored findings

@router.get("/ignored", response_model=List[IgnoredFinding])
async def ignored_for_origin(url: str, store: IgnoredFindingsStore = Depends(get_ignored_store)):
    return await store.list_for_origin(url)


@router.post("/ignored", response_model=IgnoredFinding)
async def ignore_finding(body: IgnoreRequest, store: IgnoredFindingsStore = Depends(get_ignored_store)):
    try:
        return await store.ignore(
            body.url, body.selector, body.rule_id, body.message, body.reason, body.custom_note,
        )
    except PersistenceWriteFailure as e:
        raise _write_failed(e)


@router.delete("/ignored", status_code=204)
async def unignore_finding(
    url: str,
    selector: Optional[str] = None,
    rule_id: Optional[str] = None,
    store: IgnoredFindingsStore = Depends(get_ignored_store),
):
    """Un-ignore one finding, or every finding of the origin when no selector/rule is given."""
    try:
        if selector is None and rule_id is None:
            await store.clear_origin(url)
        elif selector is None or rule_id is None:
            raise HTTPException(status_code=422, detail="selector and rule_id go together")
        else:
            await store.unignore(url, selector, rule_id)
    except PersistenceWriteFailure as e:
        raise _write_failed(e)
