"""
DispatchLib - Filter dispatch, caching and scheduling

Runs filters over a document's raster targets: the result cache, the
synchronous dispatcher, the thread-pool scheduler, the reference document
and selection models, and the session entry point.
"""

from PF_Libs.DispatchLib.raster_models import (
    RasterTarget,
    FilterState,
    TargetOutcome,
    CancellationToken,
)
from PF_Libs.DispatchLib.engine_config import FilterEngineConfig
from PF_Libs.DispatchLib.result_cache import CacheKey, FilteredResult, ResultCache
from PF_Libs.DispatchLib.dispatcher import FilterDispatcher
from PF_Libs.DispatchLib.scheduler import FilterScheduler
from PF_Libs.DispatchLib.document_model import InMemoryDocument, SelectionState
from PF_Libs.DispatchLib.filter_session import FilterSession

__all__ = [
    "RasterTarget",
    "FilterState",
    "TargetOutcome",
    "CancellationToken",
    "FilterEngineConfig",
    "CacheKey",
    "FilteredResult",
    "ResultCache",
    "FilterDispatcher",
    "FilterScheduler",
    "InMemoryDocument",
    "SelectionState",
    "FilterSession",
]
