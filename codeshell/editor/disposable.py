# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Disposable handles for deterministic teardown of subscriptions."""

import logging
from typing import Callable, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class DisposableLike(Protocol):
    """Anything that can release its resources exactly once."""

    def dispose(self) -> None: ...


class Disposable:
    """Wraps a release callback; calling dispose() more than once is a no-op."""

    def __init__(self, on_dispose: Optional[Callable[[], None]] = None):
        self._on_dispose = on_dispose
        self._disposed = False

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        callback, self._on_dispose = self._on_dispose, None
        if callback is not None:
            callback()


class DisposableStore:
    """Collects disposables and releases them together.

    Individual failures are logged and do not stop the remaining handles
    from being disposed. Anything added after the store was disposed is
    disposed immediately.
    """

    def __init__(self) -> None:
        self._items: List[DisposableLike] = []
        self._disposed = False

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def disposables(self) -> List[DisposableLike]:
        return list(self._items)

    def add(self, item: DisposableLike) -> DisposableLike:
        if self._disposed:
            logger.debug("Adding to a disposed store, releasing immediately")
            self._dispose_one(item)
            return item
        self._items.append(item)
        return item

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        items, self._items = self._items, []
        for item in items:
            self._dispose_one(item)

    @staticmethod
    def _dispose_one(item: DisposableLike) -> None:
        try:
            item.dispose()
        except Exception as e:
            logger.warning(f"Failed to dispose {item!r}: {e}")

    def __len__(self) -> int:
        return len(self._items)
