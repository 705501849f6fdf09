from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Set
import logging
import re

from index_lifecycle.models.search_engine import SearchEngine
from index_lifecycle.models.search_result import SearchResultPage

logger = logging.getLogger(__name__)

DEFAULT_SCROLL_DURATION = "1m"
SCROLL_DURATION_PATTERN = re.compile(r"^\d+[smh]$")


class InvalidScrollDurationError(ValueError):
    def __init__(self, duration: Any):
        super().__init__(f"Invalid scroll duration '{duration}', expected an integer followed by s, m or h")
        self.duration = duration


def validate_scroll_duration(duration: str) -> str:
    if not isinstance(duration, str) or not SCROLL_DURATION_PATTERN.match(duration):
        raise InvalidScrollDurationError(duration)
    return duration


@dataclass(frozen=True)
class ScrollState:
    scroll_id: str
    keep_alive: str


class ScrollCursor:
    """
    Pages through every hit of a query using the scroll API.

    Iterating yields non-empty SearchResultPage objects in the order the engine returns them. Whenever
    the engine hands out a new scroll id, the previous one is released; the last one is released when
    iteration finishes, fails, or is abandoned through close() (or leaving a `with` block). Each distinct
    scroll id is released at most once. A release that fails while another error is propagating is
    logged, so the caller sees the original error.

    A cursor can only be iterated once.
    """

    def __init__(self, engine: SearchEngine, index: Optional[List[str]] = None,
                 doc_type: Optional[List[str]] = None, body: Optional[Dict[str, Any]] = None,
                 scroll: str = DEFAULT_SCROLL_DURATION) -> None:
        self.keep_alive = validate_scroll_duration(scroll)
        self.engine = engine
        self.index = index
        self.doc_type = doc_type
        self.body = body
        self.state: Optional[ScrollState] = None
        self.pages_read = 0
        self.items_read = 0
        self._released: Set[str] = set()
        self._pages: Optional[Iterator[SearchResultPage]] = None

    def __enter__(self) -> 'ScrollCursor':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if exc_type is None:
            self.close()
            return
        # The error that ended the with block is the one the caller sees.
        try:
            self.close()
        except Exception as e:
            logger.warning(f"Failed to release scroll after {exc_type.__name__}: {e}")

    def __iter__(self) -> Iterator[SearchResultPage]:
        if self._pages is None:
            self._pages = self._read_pages()
        return self._pages

    @property
    def released_scroll_ids(self) -> Set[str]:
        return set(self._released)

    def close(self) -> None:
        if self._pages is not None:
            # Closing the generator runs its cleanup.
            self._pages.close()

    def _read_pages(self) -> Iterator[SearchResultPage]:
        try:
            logger.info(f"Opening scroll over index={self.index} type={self.doc_type} for {self.keep_alive}")
            page = SearchResultPage.from_response(
                self.engine.search(index=self.index, doc_type=self.doc_type, body=self.body,
                                   scroll=self.keep_alive))
            while True:
                self._advance(page.scroll_id)
                if page.is_empty:
                    break
                self.pages_read += 1
                self.items_read += len(page.items)
                yield page
                if self.state is None:
                    logger.warning("Engine returned a page without a scroll id, stopping")
                    break
                page = SearchResultPage.from_response(
                    self.engine.scroll(self.state.scroll_id, self.keep_alive))
            logger.info(f"Scroll finished after {self.pages_read} pages and {self.items_read} items")
        except Exception:
            if self.state is not None:
                self._release_after_failure(self.state.scroll_id)
            raise
        finally:
            if self.state is not None:
                self._release(self.state.scroll_id)

    def _advance(self, scroll_id: str) -> None:
        if not scroll_id:
            return
        previous = self.state
        self.state = ScrollState(scroll_id=scroll_id, keep_alive=self.keep_alive)
        if previous is not None and previous.scroll_id != scroll_id:
            self._release(previous.scroll_id)

    def _release(self, scroll_id: str) -> None:
        if scroll_id in self._released:
            return
        self._released.add(scroll_id)
        logger.debug(f"Releasing scroll {scroll_id[:32]}")
        self.engine.clear_scroll(scroll_id)

    def _release_after_failure(self, scroll_id: str) -> None:
        try:
            self._release(scroll_id)
        except Exception as e:
            logger.warning(f"Failed to release scroll {scroll_id[:32]} after an earlier error: {e}")
