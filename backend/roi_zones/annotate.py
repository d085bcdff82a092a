import cv2
import numpy as np

from .frames import Detection
from .geometry import Polygon

ZONE_COLOR = (0, 255, 0)
HIT_COLOR = (0, 0, 255)
MISS_COLOR = (255, 0, 0)


def draw_zone(frame: np.ndarray, zone: Polygon, color=ZONE_COLOR, thickness: int = 2) -> np.ndarray:
    """Draws the ROI outline on a BGR frame in place"""
    pts = np.array([[p.x, p.y] for p in zone], dtype=np.int32).reshape((-1, 1, 2))
    cv2.polylines(frame, [pts], True, color, thickness)
    return frame


def draw_detection(frame: np.ndarray, detection: Detection, hit: bool, thickness: int = 2) -> np.ndarray:
    # red inside the ROI, blue outside
    color = HIT_COLOR if hit else MISS_COLOR
    box = detection.bbox
    cv2.rectangle(frame, (box.left, box.top), (box.right, box.bottom), color, thickness)
    if detection.tracking_id is not None:
        cv2.putText(frame, f"ID: {detection.tracking_id}", (box.left, box.top - 10),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)
    return frame
