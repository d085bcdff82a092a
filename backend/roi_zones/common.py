import json
import numbers
from typing import List

import numpy as np

from .geometry import Point, Polygon, Rect

ROI_TYPES = ["polygon", "rect"]


class InvalidRoiError(ValueError):
    """ROI or detection box payload that can't be turned into geometry"""


def _coordinate(value) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidRoiError("Coordinates must be integers")
    return int(value)


def parse_points(points) -> List[Point]:
    """
    Validates a list of [x, y] pairs or an (n, 2) integer array,
    JSON strings are decoded first.
    """
    if isinstance(points, str):
        try:
            points = json.loads(points)
        except json.JSONDecodeError as e:
            raise InvalidRoiError(f"Points are not valid JSON: {e}") from e

    if isinstance(points, np.ndarray):
        if points.ndim != 2 or points.shape[1] != 2:
            raise InvalidRoiError("Points array must have shape (n, 2)")
        points = points.tolist()

    if not isinstance(points, (list, tuple)):
        raise InvalidRoiError("Points must be a list of [x, y] pairs")

    result = []
    for point in points:
        if isinstance(point, Point):
            result.append(point)
            continue
        if not isinstance(point, (list, tuple)) or len(point) != 2:
            raise InvalidRoiError("Each point must have 2 coordinates")
        result.append(Point(_coordinate(point[0]), _coordinate(point[1])))
    return result


def parse_roi(roi) -> Polygon:
    """
    Builds the ROI polygon.

    Accepted forms: a Polygon, a list of [x, y] pairs (or its JSON string),
    {"type": "polygon", "points": [[x1, y1], ...]} or
    {"type": "rect", "points": [[x1, y1], [x2, y2]]}.

    The number of points is not checked here, collision_detect reports
    polygons with fewer than 3 points itself.
    """
    if isinstance(roi, Polygon):
        return roi
    if isinstance(roi, str):
        try:
            roi = json.loads(roi)
        except json.JSONDecodeError as e:
            raise InvalidRoiError(f"ROI is not valid JSON: {e}") from e

    if isinstance(roi, dict):
        roi_type = roi.get("type", "polygon")
        if roi_type not in ROI_TYPES:
            raise InvalidRoiError(f"Unknown ROI type: {roi_type}")
        if "points" not in roi:
            raise InvalidRoiError("ROI has no points")
        points = parse_points(roi["points"])
        if roi_type == "rect":
            if len(points) != 2:
                raise InvalidRoiError("Rect ROI needs exactly 2 corner points")
            rect = Rect.from_corners(points[0].x, points[0].y, points[1].x, points[1].y)
            return Polygon.from_rect(rect)
        return Polygon(points)

    return Polygon(parse_points(roi))


def rect_from_xyxy(box) -> Rect:
    """Detector box [x1, y1, x2, y2] (list or numpy array) to a Rect"""
    if len(box) != 4:
        raise InvalidRoiError("Box must be [x1, y1, x2, y2]")
    x1, y1, x2, y2 = map(int, box)
    return Rect.from_corners(x1, y1, x2, y2)
