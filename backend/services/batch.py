from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional, Set, Tuple

from services.metadata_requester import MetadataRequester
from services.models import COMPLETED, ERROR, LOADING, Asset, BatchResult, GeneratedMetadata
from services.registry import AssetRegistry

logger = logging.getLogger("uvicorn.error")

NOTHING_PENDING_MESSAGE = "All files have been processed. Upload new files to generate metadata."
BATCH_FAILED_MESSAGE = "A critical error occurred during batch processing."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"

Publisher = Callable[[Dict[str, Any]], None]
# (identity, metadata on success, error message on failure)
Outcome = Tuple[str, Optional[GeneratedMetadata], Optional[str]]

# Strong references to dispatched tasks until they finish.
_RUNNING_TASKS: Set["asyncio.Task[Outcome]"] = set()


def _publish_asset(publish: Optional[Publisher], asset: Optional[Asset]) -> None:
    if publish is None or asset is None:
        return
    publish({"type": "asset", "asset": asset.model_dump(mode="json")})


async def _drain(tasks: Iterable["asyncio.Task[Outcome]"]) -> AsyncIterator[Outcome]:
    for fut in asyncio.as_completed(list(tasks)):
        yield await fut


async def run_batch(
    registry: AssetRegistry,
    requester: MetadataRequester,
    marketplace: str,
    *,
    max_concurrency: Optional[int] = None,
    publish: Optional[Publisher] = None,
) -> BatchResult:
    """Generate metadata for every pending asset in the registry.

    All selected assets are flipped to ``loading`` before the first request is
    sent. Requests run concurrently (bounded only when ``max_concurrency`` is
    set) and each outcome is written back as it arrives. A failing asset ends
    in ``error`` without affecting its siblings.
    """
    selected = registry.pending()
    if not selected:
        logger.info("Batch skipped: no pending assets")
        return BatchResult(status="noop", message=NOTHING_PENDING_MESSAGE, assets=registry.snapshot())

    logger.info("Batch start: %s pending asset(s) marketplace=%s", len(selected), marketplace)
    for asset in selected:
        _publish_asset(publish, registry.update(asset.id, status=LOADING))

    limiter = asyncio.Semaphore(max_concurrency) if max_concurrency else contextlib.nullcontext()

    async def _work(asset: Asset) -> Outcome:
        try:
            async with limiter:
                metadata = await requester(asset.file.name, marketplace)
        except Exception as exc:
            logger.error("Metadata generation failed for %s: %s", asset.file.name, exc)
            return asset.id, None, str(exc) or UNKNOWN_ERROR_MESSAGE
        return asset.id, metadata, None

    tasks: List["asyncio.Task[Outcome]"] = [asyncio.create_task(_work(asset)) for asset in selected]
    for task in tasks:
        _RUNNING_TASKS.add(task)
        task.add_done_callback(_RUNNING_TASKS.discard)
    completed = 0
    failed = 0
    try:
        async for identity, metadata, error in _drain(tasks):
            if metadata is not None:
                updated = registry.update(
                    identity,
                    **metadata.model_dump(),
                    marketplace=marketplace,
                    status=COMPLETED,
                    error_message=None,
                )
                completed += 1
            else:
                updated = registry.update(identity, status=ERROR, error_message=error)
                failed += 1
            _publish_asset(publish, updated)
    except Exception:
        logger.exception("Batch processing failed after %s/%s asset(s)", completed + failed, len(selected))
        return BatchResult(
            status="failed",
            message=BATCH_FAILED_MESSAGE,
            total=len(selected),
            completed=completed,
            failed=failed,
            assets=registry.snapshot(),
        )

    logger.info("Batch done: total=%s completed=%s failed=%s", len(selected), completed, failed)
    return BatchResult(
        status="done",
        message=f"Generated metadata for {completed} of {len(selected)} asset(s).",
        total=len(selected),
        completed=completed,
        failed=failed,
        assets=registry.snapshot(),
    )
