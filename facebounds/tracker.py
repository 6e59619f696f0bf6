"""IoU tracker that keeps a face's tracking id stable across frames.

Each new box is greedily matched to the previous frame's tracks by IoU,
highest overlap first. Matched boxes keep the track's id; the rest get a
fresh id. Tracks that go unmatched for more than ``max_age`` frames are
retired and their ids are never reused.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

Box = Tuple[float, float, float, float]


@dataclass
class _Track:
    track_id: int
    box: Box
    age: int = 0  # frames since last match


def _iou(box_a: Box, box_b: Box) -> float:
    """Compute IoU between two boxes (x1, y1, x2, y2)."""
    x1 = max(box_a[0], box_b[0])
    y1 = max(box_a[1], box_b[1])
    x2 = min(box_a[2], box_b[2])
    y2 = min(box_a[3], box_b[3])
    inter = max(0.0, x2 - x1) * max(0.0, y2 - y1)
    area_a = max(0.0, box_a[2] - box_a[0]) * max(0.0, box_a[3] - box_a[1])
    area_b = max(0.0, box_b[2] - box_b[0]) * max(0.0, box_b[3] - box_b[1])
    union = area_a + area_b - inter
    return inter / union if union > 0 else 0.0


class IoUTracker:
    """Assigns tracking ids to per-frame face boxes."""

    def __init__(self, iou_threshold: float = 0.3, max_age: int = 5) -> None:
        self.iou_threshold = iou_threshold
        self.max_age = max_age
        self._tracks: List[_Track] = []
        self._ids = itertools.count()

    def update(self, boxes: Sequence[Box]) -> List[int]:
        """Match ``boxes`` against live tracks.

        Returns:
            One tracking id per box, in the same order as ``boxes``.
        """
        ids: List[int] = [-1] * len(boxes)
        matched_tracks = set()

        if self._tracks and boxes:
            iou = np.zeros((len(self._tracks), len(boxes)), dtype=np.float32)
            for i, track in enumerate(self._tracks):
                for j, box in enumerate(boxes):
                    iou[i, j] = _iou(track.box, box)

            # Greedy: best overlap first
            for flat in np.argsort(-iou, axis=None):
                i, j = divmod(int(flat), len(boxes))
                if iou[i, j] < self.iou_threshold:
                    break
                if i in matched_tracks or ids[j] != -1:
                    continue
                track = self._tracks[i]
                track.box = tuple(boxes[j])
                track.age = 0
                ids[j] = track.track_id
                matched_tracks.add(i)

        survivors = []
        for i, track in enumerate(self._tracks):
            if i not in matched_tracks:
                track.age += 1
                if track.age > self.max_age:
                    logger.debug("Retiring face track %d", track.track_id)
                    continue
            survivors.append(track)

        for j, box in enumerate(boxes):
            if ids[j] == -1:
                track = _Track(track_id=next(self._ids), box=tuple(box))
                survivors.append(track)
                ids[j] = track.track_id

        self._tracks = survivors
        return ids

    def reset(self) -> None:
        """Forget every live track. Ids are not reused afterwards."""
        self._tracks = []

    def __len__(self) -> int:
        return len(self._tracks)
