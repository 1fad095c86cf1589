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

"""Marker storage keyed by (resource, owner)."""

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from codeshell.editor.disposable import Disposable
from codeshell.editor.types import MarkerData, MarkerSeverity

logger = logging.getLogger(__name__)


class MarkerService:
    """Holds editor markers.

    Each owner (e.g. ``lsp-python``) has its own namespace, so several
    diagnostic sources can annotate the same resource without clobbering
    each other. Setting markers replaces the owner's previous set for that
    resource.
    """

    def __init__(self) -> None:
        self._markers: Dict[Tuple[str, str], List[MarkerData]] = {}
        self._listeners: List[Callable[[List[str]], None]] = []

    def set_model_markers(self, uri: str, owner: str, markers: Sequence[MarkerData]) -> None:
        key = (uri, owner)
        if markers:
            self._markers[key] = list(markers)
        else:
            self._markers.pop(key, None)
        logger.debug(f"{len(markers)} markers for {uri} ({owner})")
        self._fire([uri])

    def get_model_markers(
        self, uri: Optional[str] = None, owner: Optional[str] = None
    ) -> List[MarkerData]:
        """Read markers, optionally filtered by resource and/or owner."""
        result: List[MarkerData] = []
        for (resource, marker_owner), markers in self._markers.items():
            if uri is not None and resource != uri:
                continue
            if owner is not None and marker_owner != owner:
                continue
            result.extend(markers)
        return result

    def remove_owner(self, owner: str) -> None:
        """Drop every marker belonging to an owner."""
        affected = [uri for (uri, marker_owner) in self._markers if marker_owner == owner]
        for uri in affected:
            del self._markers[(uri, owner)]
        if affected:
            self._fire(affected)

    def count_by_severity(self, uri: Optional[str] = None) -> Dict[MarkerSeverity, int]:
        counts = {severity: 0 for severity in MarkerSeverity}
        for marker in self.get_model_markers(uri=uri):
            counts[marker.severity] += 1
        return counts

    def on_did_change_markers(self, listener: Callable[[List[str]], None]) -> Disposable:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Disposable(_remove)

    def _fire(self, uris: List[str]) -> None:
        for listener in list(self._listeners):
            try:
                listener(uris)
            except Exception as e:
                logger.error(f"Marker listener error: {e}")
