"""
Paginated, early-terminating validation of a cube's observations.

Flow per run:
  1. LOADING     fetch the cube's observationConstraint, inject sh:targetClass
  2. VALIDATING  fetch one window of observations, validate it, accumulate
  3. CONTINUING  ceilings not reached, move to the next window
  4. DONE        empty window (exhausted) or a ceiling tripped
  5. FAILED      load error, page error (default policy) or cancellation

Ceilings are checked after a page is fully processed: they bound how much
more work is attempted, never the size of the final report.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional

from rdflib import Graph

from mcp_common.uri import CubeReference

from .errors import TransportError, ValidationCancelled
from .fetcher import ChunkedFetcher
from .report import ReportAggregator, ValidationReport
from .shapes import ShapeGraph, ShapeGraphLoader
from .validators.shacl import EngineResult, run_shacl

log = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 10
DEFAULT_MAX_PAGES = 10
DEFAULT_MAX_VIOLATIONS = 20

EXHAUSTED = "exhausted"
MAX_PAGES = "max_pages"
MAX_VIOLATIONS = "max_violations"
PAGE_ERROR = "page_error"

Engine = Callable[[Graph, Graph], EngineResult]


class RunState(str, Enum):
    LOADING = "loading"
    VALIDATING = "validating"
    CONTINUING = "continuing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PaginationState:
    page_index: int = 0
    chunk_size: int = DEFAULT_CHUNK_SIZE
    accumulated_violation_count: int = 0
    pages_fetched: int = 0

    def ceiling(self, max_pages: int, max_violations: int) -> Optional[str]:
        if self.accumulated_violation_count >= max_violations:
            return MAX_VIOLATIONS
        if self.pages_fetched >= max_pages:
            return MAX_PAGES
        return None


class CancelToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ValidationCancelled("validation run cancelled")


class ObservationRun:
    """State of one validate_observations call. Never shared between runs."""

    def __init__(self, cube: CubeReference, loader: ShapeGraphLoader, fetcher: ChunkedFetcher,
                 engine: Engine, chunk_size: int, max_pages: int, max_violations: int,
                 partial_on_error: bool = False, prefetch: bool = False,
                 cancel: Optional[CancelToken] = None,
                 on_page: Optional[Callable[[PaginationState], None]] = None):
        self.cube = cube
        self.loader = loader
        self.fetcher = fetcher
        self.engine = engine
        self.max_pages = max_pages
        self.max_violations = max_violations
        self.partial_on_error = partial_on_error
        self.prefetch = prefetch
        self.cancel = cancel or CancelToken()
        self.on_page = on_page
        self.state = RunState.LOADING
        self.pagination = PaginationState(chunk_size=chunk_size)
        self.termination: Optional[str] = None
        self.warnings: List[str] = []

    def _fetch(self, page_index: int) -> Graph:
        return self.fetcher.fetch_page(self.cube, page_index, self.pagination.chunk_size)

    def _load(self) -> ShapeGraph:
        try:
            return self.loader.load_for_observation_constraint(self.cube)
        except Exception:
            self.state = RunState.FAILED
            raise

    def execute(self) -> ValidationReport:
        shape = self._load()
        aggregator = ReportAggregator(shape)
        executor = ThreadPoolExecutor(max_workers=1) if self.prefetch else None
        pending: Optional[Future] = None
        st = self.pagination

        try:
            while True:
                self.cancel.raise_if_cancelled()
                try:
                    page = pending.result() if pending is not None else self._fetch(st.page_index)
                except TransportError as exc:
                    pending = None
                    if not self.partial_on_error:
                        # pages already validated are dropped together with the run
                        self.state = RunState.FAILED
                        raise
                    msg = f"page {st.page_index} could not be fetched: {exc}"
                    log.warning("%s; returning %d page(s) validated so far", msg, st.pages_fetched)
                    self.warnings.append(msg)
                    self.termination = PAGE_ERROR
                    break
                pending = None

                if len(page) == 0:
                    self.termination = EXHAUSTED
                    break

                self.cancel.raise_if_cancelled()
                # one-page look-ahead, only when the next page could still count
                if executor is not None and st.pages_fetched + 1 < self.max_pages:
                    pending = executor.submit(self._fetch, st.page_index + 1)

                self.state = RunState.VALIDATING
                page_results = aggregator.add(page, self.engine(shape.graph, page))
                st.accumulated_violation_count += len(page_results)
                st.pages_fetched += 1
                st.page_index += 1
                if self.on_page is not None:
                    self.on_page(replace(st))

                reason = st.ceiling(self.max_pages, self.max_violations)
                if reason is not None:
                    self.termination = reason
                    break
                self.state = RunState.CONTINUING
        except ValidationCancelled:
            self.state = RunState.FAILED
            log.info("validation of %s cancelled after %d page(s)", self.cube.cube_iri, st.pages_fetched)
            raise
        except Exception:
            self.state = RunState.FAILED
            raise
        finally:
            if pending is not None:
                pending.cancel()
            if executor is not None:
                # a look-ahead already in flight is waited for so no request outlives the run
                executor.shutdown(wait=True, cancel_futures=True)

        self.state = RunState.DONE
        log.info(
            "observation validation of %s done: %s after %d page(s), %d result(s)",
            self.cube.cube_iri, self.termination, st.pages_fetched, st.accumulated_violation_count,
        )
        return aggregator.build(
            pages_fetched=st.pages_fetched,
            termination=self.termination,
            warnings=self.warnings,
        )


class IncrementalValidator:
    def __init__(self, loader: ShapeGraphLoader, fetcher: ChunkedFetcher, engine: Engine = run_shacl,
                 partial_on_error: bool = False, prefetch: bool = False):
        self.loader = loader
        self.fetcher = fetcher
        self.engine = engine
        self.partial_on_error = partial_on_error
        self.prefetch = prefetch

    def validate_observations(self, cube: CubeReference,
                              chunk_size: int = DEFAULT_CHUNK_SIZE,
                              max_pages: int = DEFAULT_MAX_PAGES,
                              max_violations: int = DEFAULT_MAX_VIOLATIONS,
                              cancel: Optional[CancelToken] = None,
                              on_page: Optional[Callable[[PaginationState], None]] = None) -> ValidationReport:
        """Validate observations window by window until exhausted or a ceiling trips.

        With the default policy a failed page fetch raises and the findings
        of earlier pages are discarded. With partial_on_error the report built
        so far is returned and the error is recorded in `warnings`.
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        if max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {max_pages}")
        if max_violations < 1:
            raise ValueError(f"max_violations must be >= 1, got {max_violations}")
        run = ObservationRun(
            cube, self.loader, self.fetcher, self.engine,
            chunk_size=chunk_size, max_pages=max_pages, max_violations=max_violations,
            partial_on_error=self.partial_on_error, prefetch=self.prefetch,
            cancel=cancel, on_page=on_page,
        )
        return run.execute()
